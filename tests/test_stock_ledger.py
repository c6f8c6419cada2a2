from __future__ import annotations

import pytest

from sellah.core.models import StockAction, StockRequest
from sellah.core.stock import StockLedger
from sellah.errors import (
    InsufficientStockError,
    ProductNotFoundError,
    StockAdjustmentError,
    VariationNotFoundError,
)


@pytest.fixture()
def ledger(store, test_logger) -> StockLedger:  # noqa: ANN001
    return StockLedger(store, test_logger)


def test_deduction_beyond_stock_fails_and_leaves_counter(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=3)

    with pytest.raises(InsufficientStockError) as exc_info:
        ledger.adjust_stock(context, "P1", None, -4)

    assert exc_info.value.available == 3
    assert exc_info.value.requested == 4
    assert isinstance(exc_info.value, StockAdjustmentError)
    assert ledger.get_stock(context, "P1") == 3


def test_restoration_adds_exact_quantity(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=3)

    assert ledger.adjust_stock(context, "P1", None, 4) == 7
    assert ledger.adjust_stock(context, "P1", None, -7) == 0
    assert ledger.get_stock(context, "P1") == 0


def test_variation_counter_is_adjusted_independently(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product(
        "P2",
        stock=100,
        variations=[{"id": "red", "name": "Red", "stock": 2}, {"id": "blue", "name": "Blue", "stock": 9}],
    )

    assert ledger.adjust_stock(context, "P2", "red", -2) == 0
    assert ledger.get_stock(context, "P2", "red") == 0
    assert ledger.get_stock(context, "P2", "blue") == 9
    assert ledger.get_stock(context, "P2") == 100


def test_missing_product_and_variation_raise_not_found(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=1, variations=[{"id": "red", "stock": 1}])

    with pytest.raises(ProductNotFoundError):
        ledger.adjust_stock(context, "nope", None, -1)
    with pytest.raises(VariationNotFoundError):
        ledger.adjust_stock(context, "P1", "green", -1)


def test_check_availability_merges_lines_of_same_product(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=3)

    report = ledger.check_availability(
        context,
        [StockRequest("P1", 2), StockRequest("P1", 2), StockRequest("ghost", 1)],
    )

    assert report.available is False
    by_product = {item.product_id: item for item in report.insufficient}
    assert by_product["P1"].available == 3
    assert by_product["P1"].required == 4
    assert by_product["ghost"].missing is True
    assert by_product["ghost"].available == 0


def test_reserve_deducts_every_item_and_reports_movements(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=5)
    make_product("P2", stock=4)

    movements = ledger.reserve(context, [StockRequest("P1", 2), StockRequest("P2", 1)])

    assert [(m.product_id, m.action, m.new_stock) for m in movements] == [
        ("P1", StockAction.DEDUCT, 3),
        ("P2", StockAction.DEDUCT, 3),
    ]
    assert ledger.get_stock(context, "P1") == 3
    assert ledger.get_stock(context, "P2") == 3


def test_reserve_fails_precheck_without_touching_stock(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=5)
    make_product("P2", stock=0)

    with pytest.raises(InsufficientStockError):
        ledger.reserve(context, [StockRequest("P1", 2), StockRequest("P2", 1)])

    assert ledger.get_stock(context, "P1") == 5
    assert ledger.get_stock(context, "P2") == 0


def test_reserve_compensates_applied_deductions_when_a_later_item_fails(
    ledger, context, make_product, store, monkeypatch
) -> None:  # noqa: ANN001
    make_product("P1", stock=5)
    make_product("P2", stock=5)

    original = ledger.adjust_stock

    def flaky_adjust(ctx, product_id, variation_id, delta):  # noqa: ANN001,ANN202
        if product_id == "P2" and delta < 0:
            # another writer drained P2 between the pre-check and the deduction
            store.update(ctx, "products", "P2", {"stock": 0})
        return original(ctx, product_id, variation_id, delta)

    monkeypatch.setattr(ledger, "adjust_stock", flaky_adjust)

    with pytest.raises(InsufficientStockError):
        ledger.reserve(context, [StockRequest("P1", 2), StockRequest("P2", 1)])

    assert ledger.get_stock(context, "P1") == 5
    assert ledger.get_stock(context, "P2") == 0


def test_release_restores_every_item(ledger, context, make_product) -> None:  # noqa: ANN001
    make_product("P1", stock=1)

    movements = ledger.release(context, [StockRequest("P1", 2), StockRequest("P1", 3)])

    assert [m.new_stock for m in movements] == [3, 6]
    assert all(m.action is StockAction.RESTORE for m in movements)


def test_non_integer_stock_counter_is_rejected(ledger, context, store) -> None:  # noqa: ANN001
    store.set(context, "products", "P9", {"name": "Hand seeded", "stock": 2.5})

    with pytest.raises(StockAdjustmentError):
        ledger.get_stock(context, "P9")
    with pytest.raises(StockAdjustmentError):
        ledger.adjust_stock(context, "P9", None, -1)

    assert store.get(context, "products", "P9")["stock"] == 2.5


def test_whole_float_and_missing_counters_are_accepted(ledger, context, store) -> None:  # noqa: ANN001
    store.set(context, "products", "P10", {"stock": 4.0})
    store.set(context, "products", "P11", {"name": "No counter"})

    assert ledger.adjust_stock(context, "P10", None, -1) == 3
    assert ledger.get_stock(context, "P11") == 0
