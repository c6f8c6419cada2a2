from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from sellah.config import Settings
from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.models import LineItem, Order
from sellah.core.stock.ledger import PRODUCTS_COLLECTION
from sellah.services.orders import OrderStatusCoordinator


@pytest.fixture()
def store(tmp_path: Path):
    db_path = tmp_path / "sellah.sqlite3"
    document_store = DocumentStore(db_path)
    document_store.migrate()
    try:
        yield document_store
    finally:
        document_store.close()


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch) -> Settings:  # noqa: ANN001
    for name in ["SELLAH_HOME", "SELLAH_DATA_DIR", "SELLAH_DB_PATH", "SELLAH_LOG_DIR", "SELLAH_EXPORT_DIR"]:
        monkeypatch.delenv(name, raising=False)
    root = tmp_path / "project"
    root.mkdir(parents=True, exist_ok=True)
    s = Settings.load(base_dir=root)
    s.ensure_directories()
    return s


@pytest.fixture()
def test_logger() -> logging.Logger:
    logger = logging.getLogger("sellah-test")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)
    return logger


@pytest.fixture()
def context() -> TenantContext:
    return TenantContext(tenant_id="shop-a", correlation_id="test-run")


@pytest.fixture()
def coordinator(store, test_logger) -> OrderStatusCoordinator:  # noqa: ANN001
    return OrderStatusCoordinator.from_store(store, test_logger)


@pytest.fixture()
def make_product(store, context) -> Callable[..., str]:  # noqa: ANN001
    def _make(product_id: str = "P1", stock: int = 5, variations: list[dict[str, Any]] | None = None) -> str:
        data: dict[str, Any] = {"name": f"Product {product_id}", "price": 100.0, "stock": stock}
        if variations is not None:
            data["variations"] = variations
        store.set(context, PRODUCTS_COLLECTION, product_id, data)
        return product_id

    return _make


@pytest.fixture()
def make_order(coordinator, context) -> Callable[..., Order]:  # noqa: ANN001
    def _make(
        items: list[tuple[str, int]] | None = None,
        customer_id: str = "customer-1",
        shipping_fee: float = 0.0,
    ) -> Order:
        line_items = [
            LineItem(product_id=product_id, quantity=quantity, unit_price=100.0, product_name=f"Product {product_id}")
            for product_id, quantity in (items or [("P1", 2)])
        ]
        return coordinator.create_order(context, customer_id, line_items, shipping_fee=shipping_fee)

    return _make
