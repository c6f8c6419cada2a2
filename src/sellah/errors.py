"""Exception hierarchy for the order lifecycle core."""

from __future__ import annotations


class SellahError(Exception):
    """Base exception for all sellah errors."""

    pass


class NotFoundError(SellahError):
    """Raised when a referenced document does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order", order_id)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product", product_id)


class VariationNotFoundError(NotFoundError):
    def __init__(self, product_id: str, variation_id: str):
        self.product_id = product_id
        self.variation_id = variation_id
        super().__init__("Variation", f"{variation_id} (product {product_id})")


class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__("Notification", notification_id)


class InvalidTransitionError(SellahError):
    """Raised when a status change is not listed in the transition table."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid status transition: {from_status} -> {to_status}")


class StockAdjustmentError(SellahError):
    """Raised when a stock mutation could not be applied.

    Wraps lower-level transaction failures; callers may retry with backoff.
    """

    def __init__(self, message: str, product_id: str | None = None, variation_id: str | None = None):
        self.product_id = product_id
        self.variation_id = variation_id
        super().__init__(message)


class InsufficientStockError(StockAdjustmentError):
    """Raised when a deduction would drive a stock counter below zero."""

    def __init__(self, product_id: str, variation_id: str | None, available: int, requested: int):
        self.available = available
        self.requested = requested
        target = product_id if not variation_id else f"{product_id}/{variation_id}"
        super().__init__(
            f"Insufficient stock for {target}: {available} available, {requested} requested",
            product_id=product_id,
            variation_id=variation_id,
        )


class StoreError(SellahError):
    """Raised when the document store fails to read or write."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Document store {operation} failed: {detail}")


class TransitionTableError(SellahError):
    """Raised when the status transition table is incomplete or inconsistent."""

    pass
