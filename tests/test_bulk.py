from __future__ import annotations

import threading

import pytest

from sellah.core.models import OrderStatus
from sellah.services.bulk import BulkStatusDriver, StatusUpdate


def test_bulk_collects_failures_without_raising(coordinator, context, make_product, make_order, test_logger) -> None:  # noqa: ANN001
    make_product("P1", stock=10)
    orders = [make_order([("P1", 1)]) for _ in range(3)]
    driver = BulkStatusDriver(coordinator, test_logger)

    updates = [StatusUpdate(order.id, "approved", actor_id="admin-1") for order in orders]
    updates.insert(1, StatusUpdate("missing-order", "approved", actor_id="admin-1"))

    result = driver.apply_bulk(context, updates)

    assert result.success == [order.id for order in orders]
    assert len(result.failed) == 1
    assert result.failed[0].order_id == "missing-order"
    assert result.failed[0].error_type == "OrderNotFoundError"
    assert result.skipped == []
    assert coordinator.ledger.get_stock(context, "P1") == 7


def test_bulk_reports_invalid_transitions_per_item(coordinator, context, make_product, make_order, test_logger) -> None:  # noqa: ANN001
    make_product("P1", stock=10)
    first = make_order()
    second = make_order()
    driver = BulkStatusDriver(coordinator, test_logger)

    result = driver.apply_bulk(
        context,
        [
            StatusUpdate(first.id, "shipped", actor_id="admin-1"),
            StatusUpdate(second.id, "cancelled", actor_id="admin-1"),
        ],
    )

    assert result.success == [second.id]
    assert result.failed[0].error_type == "InvalidTransitionError"
    assert coordinator.get_order(context, first.id).status is OrderStatus.PENDING


def test_bulk_stops_when_cancelled(coordinator, context, make_product, make_order, test_logger) -> None:  # noqa: ANN001
    make_product("P1", stock=10)
    orders = [make_order() for _ in range(3)]
    cancel_event = threading.Event()
    original = coordinator.update_status

    def cancel_after_first(*args, **kwargs):  # noqa: ANN002,ANN003,ANN202
        updated = original(*args, **kwargs)
        cancel_event.set()
        return updated

    coordinator.update_status = cancel_after_first
    driver = BulkStatusDriver(coordinator, test_logger)

    result = driver.apply_bulk(
        context,
        [StatusUpdate(order.id, "cancelled", actor_id="admin-1") for order in orders],
        cancel_event=cancel_event,
    )

    assert result.success == [orders[0].id]
    assert result.skipped == [orders[1].id, orders[2].id]
    assert result.as_stats() == {"success": 1, "failed": 0, "skipped": 2}


def test_bulk_enforces_item_limit(coordinator, context, test_logger) -> None:  # noqa: ANN001
    driver = BulkStatusDriver(coordinator, test_logger, max_items=1)

    with pytest.raises(ValueError):
        driver.apply_bulk(
            context,
            [StatusUpdate("a", "approved", actor_id="x"), StatusUpdate("b", "approved", actor_id="x")],
        )


def test_status_update_from_dict_uses_default_actor() -> None:
    update = StatusUpdate.from_dict({"order_id": "o-1", "status": "approved"}, default_actor="ops")

    assert update.actor_id == "ops"
    assert update.new_status == "approved"
    with pytest.raises(ValueError):
        StatusUpdate.from_dict({"order_id": "o-1"})
