from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import Order, OrderStatus, utc_now_iso
from sellah.errors import OrderNotFoundError

ORDERS_COLLECTION = "orders"


class OrderRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, context: TenantContext, order_id: str, include_deleted: bool = False) -> Order:
        data = self.store.get(context, ORDERS_COLLECTION, order_id)
        if data is None or (data.get("deleted") and not include_deleted):
            raise OrderNotFoundError(order_id)
        return Order.from_document(data)

    def list_orders(
        self,
        context: TenantContext,
        status: OrderStatus | None = None,
        customer_id: str | None = None,
        include_deleted: bool = False,
        limit: int | None = 50,
    ) -> list[Order]:
        where: dict[str, Any] = {}
        if status is not None:
            where["status"] = status.value
        if customer_id is not None:
            where["customer_id"] = customer_id
        if not include_deleted:
            where["deleted"] = False
        rows = self.store.query(
            context,
            ORDERS_COLLECTION,
            where=where,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Order.from_document(row) for row in rows]

    def insert(self, context: TenantContext, order: Order) -> Order:
        order.id = self.store.add(context, ORDERS_COLLECTION, order.to_document())
        return order

    @contextmanager
    def editing(self, context: TenantContext, order_id: str) -> Iterator[Order]:
        """Load an order inside a single-document transaction and persist it on exit.

        Any exception raised by the caller rolls the transaction back.
        """
        with self.store.transaction(context, ORDERS_COLLECTION, order_id) as txn:
            data = txn.get()
            if data is None or data.get("deleted"):
                raise OrderNotFoundError(order_id)
            order = Order.from_document(data)
            yield order
            order.updated_at = utc_now_iso()
            txn.set(order.to_document())
