from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now_iso() -> str:
    # fixed precision so stored timestamps sort lexicographically
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def round_money(value: float) -> float:
    return round(float(value), 2)


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    RETURNED = "returned"
    REFUNDED = "refunded"


class ActivityKind(str, Enum):
    ORDER_CREATED = "order_created"
    STATUS_CHANGE = "status_change"
    PAYMENT_UPDATE = "payment_update"
    SHIPPING_UPDATE = "shipping_update"
    NOTE = "note"
    ORDER_UPDATED = "order_updated"


class NotificationType(str, Enum):
    ORDER = "Order"
    PAYMENT = "Payment"
    SYSTEM = "System"
    SHIPPING = "Shipping"


class StockAction(str, Enum):
    DEDUCT = "deduct"
    RESTORE = "restore"


@dataclass(slots=True)
class LineItem:
    product_id: str
    quantity: int
    unit_price: float
    product_name: str
    variation_id: str | None = None
    variation_name: str | None = None
    line_total: float | None = None

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValueError("Line item requires a product_id")
        if isinstance(self.quantity, bool) or int(self.quantity) != self.quantity or self.quantity <= 0:
            raise ValueError(f"Line item quantity must be a positive integer, got {self.quantity!r}")
        self.quantity = int(self.quantity)
        if self.unit_price < 0:
            raise ValueError("Line item unit_price must not be negative")
        expected = round_money(self.quantity * self.unit_price)
        if self.line_total is None:
            self.line_total = expected
        elif not math.isclose(self.line_total, expected, abs_tol=0.005):
            raise ValueError(
                f"Line total {self.line_total} does not match {self.quantity} x {self.unit_price}"
            )

    def to_document(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variation_id": self.variation_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "product_name": self.product_name,
            "variation_name": self.variation_name,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> LineItem:
        return cls(
            product_id=data.get("product_id") or data.get("productId"),
            quantity=data["quantity"],
            unit_price=float(data.get("unit_price", data.get("price", 0.0))),
            product_name=data.get("product_name") or data.get("productName") or "",
            variation_id=data.get("variation_id") or data.get("variationId"),
            variation_name=data.get("variation_name") or data.get("variationName"),
            line_total=data.get("line_total"),
        )


@dataclass(slots=True)
class StatusHistoryEntry:
    status: OrderStatus
    timestamp: str
    updated_by: str
    previous_status: OrderStatus | None = None
    note: str | None = None
    updated_by_name: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "timestamp": self.timestamp,
            "note": self.note,
            "updated_by": self.updated_by,
            "updated_by_name": self.updated_by_name,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> StatusHistoryEntry:
        previous = data.get("previous_status")
        return cls(
            status=OrderStatus(data["status"]),
            timestamp=data["timestamp"],
            updated_by=data.get("updated_by", "system"),
            previous_status=OrderStatus(previous) if previous else None,
            note=data.get("note"),
            updated_by_name=data.get("updated_by_name"),
        )


@dataclass(slots=True)
class OrderNote:
    note: str
    timestamp: str
    added_by: str
    user_name: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "note": self.note,
            "timestamp": self.timestamp,
            "added_by": self.added_by,
            "user_name": self.user_name,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> OrderNote:
        return cls(
            note=data["note"],
            timestamp=data["timestamp"],
            added_by=data.get("added_by", "system"),
            user_name=data.get("user_name"),
        )


@dataclass(slots=True)
class Order:
    """Order aggregate; line items, notes and history are embedded values."""

    id: str
    order_number: str
    customer_id: str | None
    status: OrderStatus
    items: list[LineItem]
    subtotal: float
    shipping_fee: float
    tax_amount: float
    total_amount: float
    currency: str
    created_at: str
    updated_at: str
    payment_status: str = "pending"
    shipping_address: dict[str, Any] | None = None
    delivery_method: str = "delivery"
    tracking_number: str | None = None
    carrier: str | None = None
    approve_payment: bool = False
    out_of_delivery: bool = False
    deleted: bool = False
    notes: list[OrderNote] = field(default_factory=list)
    status_history: list[StatusHistoryEntry] = field(default_factory=list)

    def verify_totals(self) -> None:
        expected_subtotal = round_money(sum(item.line_total or 0.0 for item in self.items))
        if not math.isclose(self.subtotal, expected_subtotal, abs_tol=0.005):
            raise ValueError(f"Subtotal {self.subtotal} does not match line items ({expected_subtotal})")
        expected_total = round_money(self.subtotal + self.shipping_fee + self.tax_amount)
        if not math.isclose(self.total_amount, expected_total, abs_tol=0.005):
            raise ValueError(
                f"Total {self.total_amount} does not equal subtotal + shipping_fee + tax_amount ({expected_total})"
            )

    def to_document(self) -> dict[str, Any]:
        return {
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "status": self.status.value,
            "payment_status": self.payment_status,
            "items": [item.to_document() for item in self.items],
            "subtotal": self.subtotal,
            "shipping_fee": self.shipping_fee,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "shipping_address": self.shipping_address,
            "delivery_method": self.delivery_method,
            "tracking_number": self.tracking_number,
            "carrier": self.carrier,
            "approve_payment": self.approve_payment,
            "out_of_delivery": self.out_of_delivery,
            "deleted": self.deleted,
            "notes": [note.to_document() for note in self.notes],
            "status_history": [entry.to_document() for entry in self.status_history],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Order:
        return cls(
            id=data["id"],
            order_number=data.get("order_number") or data["id"],
            customer_id=data.get("customer_id") or data.get("created_by"),
            status=OrderStatus(data["status"]),
            items=[LineItem.from_document(item) for item in data.get("items", [])],
            subtotal=float(data.get("subtotal", 0.0)),
            shipping_fee=float(data.get("shipping_fee", 0.0)),
            tax_amount=float(data.get("tax_amount", 0.0)),
            total_amount=float(data.get("total_amount", 0.0)),
            currency=data.get("currency", "PHP"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            payment_status=data.get("payment_status", "pending"),
            shipping_address=data.get("shipping_address"),
            delivery_method=data.get("delivery_method", "delivery"),
            tracking_number=data.get("tracking_number"),
            carrier=data.get("carrier"),
            approve_payment=bool(data.get("approve_payment", False)),
            out_of_delivery=bool(data.get("out_of_delivery", False)),
            deleted=bool(data.get("deleted", False)),
            notes=[OrderNote.from_document(note) for note in data.get("notes", [])],
            status_history=[StatusHistoryEntry.from_document(entry) for entry in data.get("status_history", [])],
        )


@dataclass(slots=True)
class OrderActivity:
    order_id: str
    user_id: str
    activity_type: ActivityKind
    description: str
    new_value: str | None = None
    old_value: str | None = None
    user_name: str | None = None
    timestamp: str = field(default_factory=utc_now_iso)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "activity_type": self.activity_type.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "description": self.description,
            "timestamp": self.timestamp,
            # drop unset keys so documents stay compact
            "metadata": {k: v for k, v in self.metadata.items() if v is not None},
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> OrderActivity:
        return cls(
            id=data.get("id"),
            order_id=data["order_id"],
            user_id=data.get("user_id", "system"),
            user_name=data.get("user_name"),
            activity_type=ActivityKind(data["activity_type"]),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
            description=data.get("description", ""),
            timestamp=data.get("timestamp", ""),
            metadata=data.get("metadata") or {},
        )


@dataclass(slots=True)
class Notification:
    receiver_id: str
    sender_id: str
    title: str
    content: str
    type: NotificationType
    order_id: str | None = None
    is_read: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "receiver_id": self.receiver_id,
            "sender_id": self.sender_id,
            "title": self.title,
            "content": self.content,
            "type": self.type.value,
            "order_id": self.order_id,
            "is_read": self.is_read,
            "created_at": self.created_at,
            "metadata": self.metadata,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Notification:
        return cls(
            id=data.get("id"),
            receiver_id=data["receiver_id"],
            sender_id=data.get("sender_id", "system"),
            title=data.get("title", ""),
            content=data.get("content", ""),
            type=NotificationType(data.get("type", NotificationType.SYSTEM.value)),
            order_id=data.get("order_id"),
            is_read=bool(data.get("is_read", False)),
            created_at=data.get("created_at", ""),
            metadata=data.get("metadata") or {},
        )


@dataclass(slots=True)
class StockRequest:
    product_id: str
    quantity: int
    variation_id: str | None = None

    @classmethod
    def from_line_item(cls, item: LineItem) -> StockRequest:
        return cls(product_id=item.product_id, quantity=item.quantity, variation_id=item.variation_id)


@dataclass(slots=True)
class StockMovement:
    product_id: str
    variation_id: str | None
    quantity: int
    action: StockAction
    new_stock: int

    @property
    def delta(self) -> int:
        return -self.quantity if self.action is StockAction.DEDUCT else self.quantity

    def to_document(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variation_id": self.variation_id,
            "quantity": self.quantity,
            "action": self.action.value,
            "new_stock": self.new_stock,
        }
