from __future__ import annotations

import logging
from typing import Any

from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import ActivityKind, Notification, OrderActivity, StockMovement, utc_now_iso
from sellah.core.notifications import NotificationService

ACTIVITIES_COLLECTION = "order_activities"
STOCK_ACTIVITIES_COLLECTION = "stock_activities"


class ActivityRecorder:
    """
    Audit trail and customer notifications for order changes.

    Writes here happen after the primary status/stock change has committed,
    so every ``record_*`` method is best effort: a failed write is logged and
    swallowed, never reported as a failure of the order operation.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifications: NotificationService,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self.store = store
        self.notifications = notifications
        self.logger = logger

    def add_activity(self, context: TenantContext, activity: OrderActivity) -> OrderActivity:
        activity.id = self.store.add(context, ACTIVITIES_COLLECTION, activity.to_document())
        return activity

    def record_activity(
        self,
        context: TenantContext,
        activity: OrderActivity,
        notification: Notification | None = None,
    ) -> None:
        try:
            self.add_activity(context, activity)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "Activity %s for order %s was not recorded: %s",
                activity.activity_type.value,
                activity.order_id,
                exc,
            )

        if notification is None:
            return
        if notification.receiver_id == notification.sender_id:
            return
        try:
            self.notifications.create(context, notification)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "Notification for order %s to %s was not created: %s",
                notification.order_id,
                notification.receiver_id,
                exc,
            )

    def record_status_change(
        self,
        context: TenantContext,
        order_id: str,
        order_number: str,
        customer_id: str | None,
        old_status: str,
        new_status: str,
        actor_id: str,
        actor_name: str | None = None,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        activity = OrderActivity(
            order_id=order_id,
            user_id=actor_id,
            user_name=actor_name,
            activity_type=ActivityKind.STATUS_CHANGE,
            old_value=old_status,
            new_value=new_status,
            description=reason or f"Order status changed from {old_status} to {new_status}",
            metadata={"order_number": order_number, "reason": reason, **(metadata or {})},
        )
        notification = None
        if customer_id and customer_id != actor_id:
            notification = self.notifications.build_status_notification(
                order_id=order_id,
                order_number=order_number,
                customer_id=customer_id,
                old_status=old_status,
                new_status=new_status,
                sender_id=actor_id,
            )
        self.record_activity(context, activity, notification)

    def record_stock_movements(
        self,
        context: TenantContext,
        order_id: str,
        movements: list[StockMovement],
        actor_id: str,
        reason: str,
    ) -> None:
        timestamp = utc_now_iso()
        for movement in movements:
            try:
                self.store.add(
                    context,
                    STOCK_ACTIVITIES_COLLECTION,
                    {
                        **movement.to_document(),
                        "order_id": order_id,
                        "user_id": actor_id,
                        "reason": reason,
                        "timestamp": timestamp,
                    },
                )
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Stock movement for order %s was not recorded: %s", order_id, exc)

    def list_activities(
        self,
        context: TenantContext,
        order_id: str,
        activity_type: ActivityKind | None = None,
        limit: int | None = 100,
    ) -> list[OrderActivity]:
        where: dict[str, Any] = {"order_id": order_id}
        if activity_type is not None:
            where["activity_type"] = activity_type.value
        rows = self.store.query(
            context,
            ACTIVITIES_COLLECTION,
            where=where,
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return [OrderActivity.from_document(row) for row in rows]

    def lifecycle_summary(self, context: TenantContext, order_id: str) -> dict[str, Any]:
        changes = list(
            reversed(self.list_activities(context, order_id, activity_type=ActivityKind.STATUS_CHANGE, limit=None))
        )
        return {
            "total_status_changes": len(changes),
            "status_timeline": [
                {"from": change.old_value, "to": change.new_value, "timestamp": change.timestamp, "by": change.user_id}
                for change in changes
            ],
            "current_status": changes[-1].new_value if changes else None,
            "first_change_at": changes[0].timestamp if changes else None,
            "last_change_at": changes[-1].timestamp if changes else None,
        }
