from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sellah.config import DEFAULT_CURRENCY
from sellah.core.activity import ActivityRecorder
from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import (
    ActivityKind,
    LineItem,
    Order,
    OrderActivity,
    OrderNote,
    OrderStatus,
    StatusHistoryEntry,
    StockMovement,
    StockRequest,
    round_money,
    utc_now_iso,
)
from sellah.core.notifications import NotificationService
from sellah.core.numbering import build_order_number
from sellah.core.orders import OrderRepository, StockEffect, is_valid_transition, stock_effect
from sellah.core.orders.transitions import parse_status
from sellah.core.stock import StockLedger
from sellah.errors import InvalidTransitionError, NotFoundError, StockAdjustmentError, StoreError


class OrderStatusCoordinator:
    """
    Single entry point for order mutations.

    A status change runs in a fixed order: validate against the transition
    table, move stock, persist the order, then record activity and notify.
    Stock moved before a failed persist is compensated.
    """

    def __init__(
        self,
        repository: OrderRepository,
        ledger: StockLedger,
        recorder: ActivityRecorder,
        logger: logging.Logger | logging.LoggerAdapter,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.repository = repository
        self.ledger = ledger
        self.recorder = recorder
        self.logger = logger
        self.currency = currency

    @classmethod
    def from_store(
        cls,
        store: DocumentStore,
        logger: logging.Logger | logging.LoggerAdapter,
        currency: str = DEFAULT_CURRENCY,
    ) -> OrderStatusCoordinator:
        notifications = NotificationService(store)
        return cls(
            repository=OrderRepository(store),
            ledger=StockLedger(store, logger),
            recorder=ActivityRecorder(store, notifications, logger),
            logger=logger,
            currency=currency,
        )

    @property
    def notifications(self) -> NotificationService:
        return self.recorder.notifications

    def get_order(self, context: TenantContext, order_id: str) -> Order:
        return self.repository.get(context, order_id)

    def list_orders(
        self,
        context: TenantContext,
        status: OrderStatus | None = None,
        customer_id: str | None = None,
        include_deleted: bool = False,
        limit: int | None = 50,
    ) -> list[Order]:
        return self.repository.list_orders(
            context,
            status=status,
            customer_id=customer_id,
            include_deleted=include_deleted,
            limit=limit,
        )

    def create_order(
        self,
        context: TenantContext,
        customer_id: str,
        items: Iterable[LineItem | dict[str, Any]],
        shipping_fee: float = 0.0,
        tax_amount: float = 0.0,
        currency: str | None = None,
        shipping_address: dict[str, Any] | None = None,
        delivery_method: str = "delivery",
        actor_id: str | None = None,
        order_number: str | None = None,
    ) -> Order:
        line_items = [item if isinstance(item, LineItem) else LineItem.from_document(item) for item in items]
        if not line_items:
            raise ValueError("An order needs at least one line item")
        if shipping_fee < 0 or tax_amount < 0:
            raise ValueError("shipping_fee and tax_amount must not be negative")

        now = datetime.now(timezone.utc)
        created_at = now.isoformat(timespec="microseconds")
        subtotal = round_money(sum(item.line_total or 0.0 for item in line_items))
        actor = actor_id or customer_id
        order = Order(
            id="",
            order_number=order_number or build_order_number(context.tenant_id, customer_id, now),
            customer_id=customer_id,
            status=OrderStatus.PENDING,
            items=line_items,
            subtotal=subtotal,
            shipping_fee=round_money(shipping_fee),
            tax_amount=round_money(tax_amount),
            total_amount=round_money(subtotal + shipping_fee + tax_amount),
            currency=currency or self.currency,
            created_at=created_at,
            updated_at=created_at,
            shipping_address=shipping_address,
            delivery_method=delivery_method,
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus.PENDING,
                    timestamp=created_at,
                    updated_by=actor,
                    note="Order placed",
                )
            ],
        )
        order.verify_totals()
        self.repository.insert(context, order)
        self.logger.info("Order created: %s (%s)", order.id, order.order_number)

        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor,
                activity_type=ActivityKind.ORDER_CREATED,
                new_value=OrderStatus.PENDING.value,
                description=f"Order {order.order_number} created",
                metadata={"order_number": order.order_number, "total_amount": order.total_amount},
            ),
        )
        return order

    def update_status(
        self,
        context: TenantContext,
        order_id: str,
        new_status: OrderStatus | str,
        actor_id: str,
        actor_name: str | None = None,
        reason: str | None = None,
        note: str | None = None,
    ) -> Order:
        current = self.repository.get(context, order_id)
        old_status = current.status

        target = parse_status(new_status)
        if target is None or not is_valid_transition(old_status, target):
            raise InvalidTransitionError(old_status.value, target.value if target else str(new_status))

        effect = stock_effect(old_status, target)
        movements = self._move_stock(context, current, effect)

        history_note = reason or f"Status changed from {old_status.value} to {target.value}"
        try:
            with self.repository.editing(context, order_id) as order:
                if order.status is not old_status:
                    raise InvalidTransitionError(order.status.value, target.value)
                order.status = target
                order.status_history.append(
                    StatusHistoryEntry(
                        status=target,
                        previous_status=old_status,
                        timestamp=utc_now_iso(),
                        updated_by=actor_id,
                        updated_by_name=actor_name,
                        note=history_note,
                    )
                )
                if note:
                    order.notes.append(
                        OrderNote(
                            note=note,
                            timestamp=order.status_history[-1].timestamp,
                            added_by=actor_id,
                            user_name=actor_name,
                        )
                    )
        except Exception:
            if movements:
                self.logger.warning("Persisting status of %s failed, restoring stock", order_id)
                self.ledger.compensate(context, movements)
            raise

        self.logger.info("Order %s status updated: %s -> %s", order_id, old_status.value, target.value)

        self.recorder.record_status_change(
            context,
            order_id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            old_status=old_status.value,
            new_status=target.value,
            actor_id=actor_id,
            actor_name=actor_name,
            reason=reason,
            metadata={"stock_effect": effect.value} if effect is not StockEffect.NONE else None,
        )
        if movements:
            self.recorder.record_stock_movements(
                context,
                order_id=order.id,
                movements=movements,
                actor_id=actor_id,
                reason=f"Order {target.value}",
            )
        return order

    def _move_stock(self, context: TenantContext, order: Order, effect: StockEffect) -> list[StockMovement]:
        if effect is StockEffect.NONE:
            return []
        requests = [StockRequest.from_line_item(item) for item in order.items]
        try:
            if effect is StockEffect.RESERVE:
                return self.ledger.reserve(context, requests)
            return self.ledger.release(context, requests)
        except StockAdjustmentError:
            raise
        except (NotFoundError, StoreError) as exc:
            raise StockAdjustmentError(
                f"Stock {effect.value} failed for order {order.id}: {exc}",
                product_id=getattr(exc, "product_id", None),
                variation_id=getattr(exc, "variation_id", None),
            ) from exc

    def approve_payment(
        self,
        context: TenantContext,
        order_id: str,
        actor_id: str,
        actor_name: str | None = None,
    ) -> Order:
        with self.repository.editing(context, order_id) as order:
            old_payment_status = order.payment_status
            order.approve_payment = True
            order.payment_status = "approved"

        self.logger.info("Payment approved for order %s", order_id)
        notification = None
        if order.customer_id and order.customer_id != actor_id:
            notification = self.notifications.build_payment_notification(
                order_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                payment_status="approved",
                amount=order.total_amount,
                currency=order.currency,
                sender_id=actor_id,
            )
        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor_id,
                user_name=actor_name,
                activity_type=ActivityKind.PAYMENT_UPDATE,
                old_value=old_payment_status,
                new_value="approved",
                description="Payment approved",
                metadata={"order_number": order.order_number, "amount": order.total_amount},
            ),
            notification,
        )
        return order

    def mark_out_for_delivery(
        self,
        context: TenantContext,
        order_id: str,
        actor_id: str,
        actor_name: str | None = None,
    ) -> Order:
        with self.repository.editing(context, order_id) as order:
            order.out_of_delivery = True

        self.logger.info("Order %s marked out for delivery", order_id)
        notification = None
        if order.customer_id and order.customer_id != actor_id:
            notification = self.notifications.build_shipping_notification(
                order_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                sender_id=actor_id,
                carrier=order.carrier,
                tracking_number=order.tracking_number,
                out_for_delivery=True,
            )
        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor_id,
                user_name=actor_name,
                activity_type=ActivityKind.SHIPPING_UPDATE,
                new_value="out_for_delivery",
                description="Order is out for delivery",
                metadata={"order_number": order.order_number},
            ),
            notification,
        )
        return order

    def update_shipping_info(
        self,
        context: TenantContext,
        order_id: str,
        actor_id: str,
        carrier: str | None = None,
        tracking_number: str | None = None,
        actor_name: str | None = None,
    ) -> Order:
        if not carrier and not tracking_number:
            raise ValueError("carrier or tracking_number is required")

        with self.repository.editing(context, order_id) as order:
            old_tracking = order.tracking_number
            if carrier:
                order.carrier = carrier
            if tracking_number:
                order.tracking_number = tracking_number

        notification = None
        if order.carrier and order.tracking_number and order.customer_id and order.customer_id != actor_id:
            notification = self.notifications.build_shipping_notification(
                order_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                sender_id=actor_id,
                carrier=order.carrier,
                tracking_number=order.tracking_number,
            )
        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor_id,
                user_name=actor_name,
                activity_type=ActivityKind.SHIPPING_UPDATE,
                old_value=old_tracking,
                new_value=order.tracking_number,
                description=f"Shipping info updated: {order.carrier or 'unknown carrier'}",
                metadata={"carrier": order.carrier, "tracking_number": order.tracking_number},
            ),
            notification,
        )
        return order

    def add_note(
        self,
        context: TenantContext,
        order_id: str,
        note: str,
        actor_id: str,
        actor_name: str | None = None,
    ) -> Order:
        text = (note or "").strip()
        if not text:
            raise ValueError("Note text must not be empty")

        with self.repository.editing(context, order_id) as order:
            order.notes.append(
                OrderNote(
                    note=text,
                    timestamp=utc_now_iso(),
                    added_by=actor_id,
                    user_name=actor_name,
                )
            )

        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor_id,
                user_name=actor_name,
                activity_type=ActivityKind.NOTE,
                new_value=text,
                description="Note added",
            ),
        )
        return order

    def soft_delete(
        self,
        context: TenantContext,
        order_id: str,
        actor_id: str,
        actor_name: str | None = None,
    ) -> Order:
        with self.repository.editing(context, order_id) as order:
            order.deleted = True

        self.logger.info("Order %s soft deleted by %s", order_id, actor_id)
        self.recorder.record_activity(
            context,
            OrderActivity(
                order_id=order.id,
                user_id=actor_id,
                user_name=actor_name,
                activity_type=ActivityKind.ORDER_UPDATED,
                old_value="active",
                new_value="deleted",
                description="Order deleted",
            ),
        )
        return order
