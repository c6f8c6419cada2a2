"""
Order status transition table.

The table is the only authority on which status may follow which. It is
consulted before any order mutation and checked for completeness at import.
"""

from __future__ import annotations

from enum import Enum

from sellah.core.models import OrderStatus
from sellah.errors import TransitionTableError


class StockEffect(str, Enum):
    NONE = "none"
    RESERVE = "reserve"
    RELEASE = "release"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.APPROVED,
            OrderStatus.REJECTED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.APPROVED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED, OrderStatus.RETURNED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED,
        OrderStatus.REFUNDED,
    }
)

# Statuses whose stock is held by the order (reserved at approval).
_RESERVED_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.APPROVED, OrderStatus.PROCESSING})
_RELEASING_TARGETS: frozenset[OrderStatus] = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})


def parse_status(value: OrderStatus | str) -> OrderStatus | None:
    """Return the OrderStatus for ``value`` or None when it is not a known status."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        return None


def allowed_next(status: OrderStatus) -> frozenset[OrderStatus]:
    return ALLOWED_TRANSITIONS.get(status, frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_valid_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in allowed_next(from_status)


def stock_effect(from_status: OrderStatus, to_status: OrderStatus) -> StockEffect:
    """Stock consequence of an (already validated) transition."""
    if from_status is OrderStatus.PENDING and to_status is OrderStatus.APPROVED:
        return StockEffect.RESERVE
    if from_status in _RESERVED_STATUSES and to_status in _RELEASING_TARGETS:
        return StockEffect.RELEASE
    if to_status is OrderStatus.RETURNED:
        return StockEffect.RELEASE
    return StockEffect.NONE


def check_transition_table(
    table: dict[OrderStatus, frozenset[OrderStatus]] = ALLOWED_TRANSITIONS,
    terminal: frozenset[OrderStatus] = TERMINAL_STATUSES,
) -> None:
    missing = [status.value for status in OrderStatus if status not in table]
    if missing:
        raise TransitionTableError(f"Statuses without a transition entry: {missing}")

    for source, targets in table.items():
        if source in targets:
            raise TransitionTableError(f"Status {source.value} lists itself as a successor")
        unknown = [target for target in targets if not isinstance(target, OrderStatus)]
        if unknown:
            raise TransitionTableError(f"Unknown targets from {source.value}: {unknown}")
        if source in terminal and targets:
            raise TransitionTableError(f"Terminal status {source.value} has successors")
        if source not in terminal and not targets:
            raise TransitionTableError(f"Non-terminal status {source.value} has no successors")


check_transition_table()
