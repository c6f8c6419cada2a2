from __future__ import annotations

import pytest

from sellah.core.models import OrderStatus
from sellah.core.orders import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    StockEffect,
    allowed_next,
    is_terminal,
    is_valid_transition,
    stock_effect,
)
from sellah.core.orders.transitions import check_transition_table, parse_status
from sellah.errors import TransitionTableError

EXPECTED = {
    "pending": {"approved", "rejected", "cancelled"},
    "approved": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "returned"},
    "delivered": {"completed", "returned"},
    "returned": {"refunded"},
    "completed": set(),
    "cancelled": set(),
    "rejected": set(),
    "refunded": set(),
}


def test_transition_table_matches_expected_pairs() -> None:
    for source in OrderStatus:
        assert {target.value for target in allowed_next(source)} == EXPECTED[source.value]

    for source in OrderStatus:
        for target in OrderStatus:
            assert is_valid_transition(source, target) == (target.value in EXPECTED[source.value])


def test_terminal_statuses_have_no_successors() -> None:
    assert {status.value for status in TERMINAL_STATUSES} == {"completed", "cancelled", "rejected", "refunded"}
    for status in TERMINAL_STATUSES:
        assert is_terminal(status)
        assert not allowed_next(status)
    assert not is_terminal(OrderStatus.PENDING)


def test_no_status_is_its_own_successor() -> None:
    for status in OrderStatus:
        assert not is_valid_transition(status, status)


@pytest.mark.parametrize(
    ("source", "target", "effect"),
    [
        (OrderStatus.PENDING, OrderStatus.APPROVED, StockEffect.RESERVE),
        (OrderStatus.APPROVED, OrderStatus.CANCELLED, StockEffect.RELEASE),
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED, StockEffect.RELEASE),
        (OrderStatus.SHIPPED, OrderStatus.RETURNED, StockEffect.RELEASE),
        (OrderStatus.DELIVERED, OrderStatus.RETURNED, StockEffect.RELEASE),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, StockEffect.NONE),
        (OrderStatus.PENDING, OrderStatus.REJECTED, StockEffect.NONE),
        (OrderStatus.APPROVED, OrderStatus.PROCESSING, StockEffect.NONE),
        (OrderStatus.RETURNED, OrderStatus.REFUNDED, StockEffect.NONE),
    ],
)
def test_stock_effect(source: OrderStatus, target: OrderStatus, effect: StockEffect) -> None:
    assert stock_effect(source, target) is effect


def test_parse_status_accepts_known_values_only() -> None:
    assert parse_status("Approved ") is OrderStatus.APPROVED
    assert parse_status(OrderStatus.SHIPPED) is OrderStatus.SHIPPED
    assert parse_status("settle payment") is None
    assert parse_status("preparing") is None


def test_check_transition_table_rejects_incomplete_table() -> None:
    broken = dict(ALLOWED_TRANSITIONS)
    del broken[OrderStatus.RETURNED]
    with pytest.raises(TransitionTableError):
        check_transition_table(broken)


def test_check_transition_table_rejects_terminal_with_successors() -> None:
    broken = dict(ALLOWED_TRANSITIONS)
    broken[OrderStatus.COMPLETED] = frozenset({OrderStatus.RETURNED})
    with pytest.raises(TransitionTableError):
        check_transition_table(broken)
