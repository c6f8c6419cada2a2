from __future__ import annotations

from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import Notification, NotificationType, OrderStatus, utc_now_iso
from sellah.errors import NotificationNotFoundError

NOTIFICATIONS_COLLECTION = "notifications"

STATUS_MESSAGES: dict[str, str] = {
    OrderStatus.PENDING.value: "Your order is pending approval and will be processed soon.",
    OrderStatus.APPROVED.value: "Your order has been approved and will be prepared shortly.",
    OrderStatus.PROCESSING.value: "Your order is now being processed.",
    OrderStatus.SHIPPED.value: "Your order has been shipped and is on its way.",
    OrderStatus.DELIVERED.value: "Your order has been delivered successfully.",
    OrderStatus.COMPLETED.value: "Your order has been completed. Thank you for your business!",
    OrderStatus.CANCELLED.value: "Your order has been cancelled. If you have questions, please contact support.",
    OrderStatus.REJECTED.value: "Your order has been rejected. Please contact support for more information.",
    OrderStatus.RETURNED.value: "Your order has been returned. Please contact support for assistance.",
    OrderStatus.REFUNDED.value: "Your order has been refunded and will appear in your account within 3-5 business days.",
    "out_for_delivery": "Your order is out for delivery and will arrive today.",
}

PAYMENT_MESSAGES: dict[str, str] = {
    "approved": "Your payment has been approved and your order is being processed.",
    "rejected": "Your payment was rejected. Please contact support or try a different payment method.",
    "refunded": "Your payment has been refunded and will appear in your account within 3-5 business days.",
}


def _humanize(value: str) -> str:
    return value.replace("_", " ")


def _title_case(value: str) -> str:
    return " ".join(word.capitalize() for word in _humanize(value).split())


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, f"Your order status has been updated to {_humanize(status)}.")


class NotificationService:
    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def build_status_notification(
        order_id: str,
        order_number: str,
        customer_id: str,
        old_status: str,
        new_status: str,
        sender_id: str,
    ) -> Notification:
        return Notification(
            receiver_id=customer_id,
            sender_id=sender_id,
            title=f"Order {_title_case(new_status)} - {order_number}",
            content=status_message(new_status),
            type=NotificationType.ORDER,
            order_id=order_id,
            metadata={
                "order_number": order_number,
                "old_status": old_status,
                "new_status": new_status,
                "status_change_time": utc_now_iso(),
            },
        )

    @staticmethod
    def build_payment_notification(
        order_id: str,
        order_number: str,
        customer_id: str,
        payment_status: str,
        amount: float,
        currency: str,
        sender_id: str,
    ) -> Notification:
        content = PAYMENT_MESSAGES.get(
            payment_status,
            f"Your payment status has been updated to {_humanize(payment_status)}.",
        )
        return Notification(
            receiver_id=customer_id,
            sender_id=sender_id,
            title=f"Payment {_title_case(payment_status)} - {order_number}",
            content=content,
            type=NotificationType.PAYMENT,
            order_id=order_id,
            metadata={
                "order_number": order_number,
                "payment_status": payment_status,
                "amount": amount,
                "currency": currency,
            },
        )

    @staticmethod
    def build_shipping_notification(
        order_id: str,
        order_number: str,
        customer_id: str,
        sender_id: str,
        carrier: str | None = None,
        tracking_number: str | None = None,
        out_for_delivery: bool = False,
    ) -> Notification:
        if out_for_delivery:
            title = f"Order Out For Delivery - {order_number}"
            content = STATUS_MESSAGES["out_for_delivery"]
        else:
            title = f"Order Shipped - {order_number}"
            content = f"Your order #{order_number} has been shipped via {carrier}. Tracking number: {tracking_number}"
        return Notification(
            receiver_id=customer_id,
            sender_id=sender_id,
            title=title,
            content=content,
            type=NotificationType.SHIPPING,
            order_id=order_id,
            metadata={
                "order_number": order_number,
                "carrier": carrier,
                "tracking_number": tracking_number,
                "out_for_delivery": out_for_delivery,
            },
        )

    def create(self, context: TenantContext, notification: Notification) -> Notification:
        notification.id = self.store.add(context, NOTIFICATIONS_COLLECTION, notification.to_document())
        return notification

    def list_for_user(
        self,
        context: TenantContext,
        user_id: str,
        unread_only: bool = False,
        limit: int | None = 50,
    ) -> list[Notification]:
        where: dict[str, object] = {"receiver_id": user_id}
        if unread_only:
            where["is_read"] = False
        rows = self.store.query(
            context,
            NOTIFICATIONS_COLLECTION,
            where=where,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Notification.from_document(row) for row in rows]

    def mark_as_read(self, context: TenantContext, notification_id: str, user_id: str) -> Notification:
        """Flip ``is_read``; only the receiving user may do so."""
        with self.store.transaction(context, NOTIFICATIONS_COLLECTION, notification_id) as txn:
            data = txn.get()
            if data is None or data.get("receiver_id") != user_id:
                raise NotificationNotFoundError(notification_id)
            if not data.get("is_read"):
                txn.update({"is_read": True})
            data["is_read"] = True
        return Notification.from_document(data)

    def mark_all_as_read(self, context: TenantContext, user_id: str) -> int:
        marked = 0
        for notification in self.list_for_user(context, user_id, unread_only=True, limit=None):
            self.mark_as_read(context, notification.id or "", user_id)
            marked += 1
        return marked
