from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import StockAction, StockMovement, StockRequest, utc_now_iso
from sellah.errors import (
    InsufficientStockError,
    ProductNotFoundError,
    StockAdjustmentError,
    StoreError,
    VariationNotFoundError,
)

PRODUCTS_COLLECTION = "products"


@dataclass(slots=True)
class InsufficientItem:
    product_id: str
    variation_id: str | None
    available: int
    required: int
    missing: bool = False


@dataclass(slots=True)
class AvailabilityReport:
    available: bool
    insufficient: list[InsufficientItem] = field(default_factory=list)


def _find_variation(product: dict[str, Any], variation_id: str) -> int | None:
    for index, variation in enumerate(product.get("variations") or []):
        if variation.get("id") == variation_id:
            return index
    return None


def _read_counter(value: Any, product_id: str, variation_id: str | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    target = product_id if not variation_id else f"{product_id}/{variation_id}"
    raise StockAdjustmentError(
        f"Stock counter for {target} is not an integer: {value!r}",
        product_id=product_id,
        variation_id=variation_id,
    )


def _merge_requests(items: Iterable[StockRequest]) -> dict[tuple[str, str | None], int]:
    merged: dict[tuple[str, str | None], int] = {}
    for item in items:
        key = (item.product_id, item.variation_id)
        merged[key] = merged.get(key, 0) + item.quantity
    return merged


class StockLedger:
    """Per-product (or per-variation) stock counters on product documents.

    Every mutation is a single-document transaction; a multi-item reservation
    is a saga that restores already-applied deductions when a later one fails.
    """

    def __init__(self, store: DocumentStore, logger: logging.Logger | logging.LoggerAdapter):
        self.store = store
        self.logger = logger

    def get_stock(self, context: TenantContext, product_id: str, variation_id: str | None = None) -> int:
        product = self.store.get(context, PRODUCTS_COLLECTION, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if variation_id:
            index = _find_variation(product, variation_id)
            if index is None:
                raise VariationNotFoundError(product_id, variation_id)
            return _read_counter(product["variations"][index].get("stock"), product_id, variation_id)
        return _read_counter(product.get("stock"), product_id, None)

    def adjust_stock(
        self,
        context: TenantContext,
        product_id: str,
        variation_id: str | None,
        delta: int,
    ) -> int:
        """Apply ``delta`` to one counter and return the new quantity.

        Deductions that would go below zero raise InsufficientStockError and
        write nothing. Restorations are never capped.
        """
        try:
            with self.store.transaction(context, PRODUCTS_COLLECTION, product_id) as txn:
                product = txn.get()
                if product is None:
                    raise ProductNotFoundError(product_id)

                if variation_id:
                    index = _find_variation(product, variation_id)
                    if index is None:
                        raise VariationNotFoundError(product_id, variation_id)
                    variations = product["variations"]
                    current = _read_counter(variations[index].get("stock"), product_id, variation_id)
                else:
                    current = _read_counter(product.get("stock"), product_id, None)

                new_stock = current + delta
                if new_stock < 0:
                    raise InsufficientStockError(product_id, variation_id, current, -delta)
                if delta == 0:
                    return current

                if variation_id:
                    variations[index] = {**variations[index], "stock": new_stock}
                    txn.update({"variations": variations, "updated_at": utc_now_iso()})
                else:
                    txn.update({"stock": new_stock, "updated_at": utc_now_iso()})
        except StoreError as exc:
            raise StockAdjustmentError(
                f"Stock adjustment failed for product {product_id}: {exc}",
                product_id=product_id,
                variation_id=variation_id,
            ) from exc

        self.logger.info(
            "Stock adjusted for %s%s: %s -> %s",
            product_id,
            f"/{variation_id}" if variation_id else "",
            current,
            new_stock,
        )
        return new_stock

    def check_availability(self, context: TenantContext, items: Iterable[StockRequest]) -> AvailabilityReport:
        """Non-transactional pre-flight read; a later deduction can still lose a race."""
        insufficient: list[InsufficientItem] = []
        for (product_id, variation_id), required in _merge_requests(items).items():
            try:
                available = self.get_stock(context, product_id, variation_id)
            except (ProductNotFoundError, VariationNotFoundError):
                insufficient.append(InsufficientItem(product_id, variation_id, 0, required, missing=True))
                continue
            if available < required:
                insufficient.append(InsufficientItem(product_id, variation_id, available, required))

        return AvailabilityReport(available=not insufficient, insufficient=insufficient)

    def reserve(self, context: TenantContext, items: Iterable[StockRequest]) -> list[StockMovement]:
        requests = list(items)
        report = self.check_availability(context, requests)
        if not report.available:
            first = report.insufficient[0]
            if first.missing:
                # re-read to raise the precise not-found error
                self.get_stock(context, first.product_id, first.variation_id)
            raise InsufficientStockError(first.product_id, first.variation_id, first.available, first.required)

        return self._apply(context, requests, StockAction.DEDUCT)

    def release(self, context: TenantContext, items: Iterable[StockRequest]) -> list[StockMovement]:
        return self._apply(context, list(items), StockAction.RESTORE)

    def _apply(
        self,
        context: TenantContext,
        requests: list[StockRequest],
        action: StockAction,
    ) -> list[StockMovement]:
        applied: list[StockMovement] = []
        for request in requests:
            delta = -request.quantity if action is StockAction.DEDUCT else request.quantity
            try:
                new_stock = self.adjust_stock(context, request.product_id, request.variation_id, delta)
            except Exception:
                self.logger.warning(
                    "Stock %s failed for %s after %s applied movements, compensating",
                    action.value,
                    request.product_id,
                    len(applied),
                )
                self.compensate(context, applied)
                raise
            applied.append(
                StockMovement(
                    product_id=request.product_id,
                    variation_id=request.variation_id,
                    quantity=request.quantity,
                    action=action,
                    new_stock=new_stock,
                )
            )
        return applied

    def compensate(self, context: TenantContext, movements: list[StockMovement]) -> list[StockMovement]:
        """Undo ``movements`` newest first. Failures are logged, not raised."""
        reversed_movements: list[StockMovement] = []
        for movement in reversed(movements):
            inverse = StockAction.RESTORE if movement.action is StockAction.DEDUCT else StockAction.DEDUCT
            try:
                new_stock = self.adjust_stock(context, movement.product_id, movement.variation_id, -movement.delta)
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "Stock compensation failed for %s (%s %s): %s",
                    movement.product_id,
                    inverse.value,
                    movement.quantity,
                    exc,
                )
                continue
            reversed_movements.append(
                StockMovement(
                    product_id=movement.product_id,
                    variation_id=movement.variation_id,
                    quantity=movement.quantity,
                    action=inverse,
                    new_stock=new_stock,
                )
            )
        return reversed_movements
