from .repository import OrderRepository
from .transitions import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    StockEffect,
    allowed_next,
    is_terminal,
    is_valid_transition,
    stock_effect,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "OrderRepository",
    "StockEffect",
    "allowed_next",
    "is_terminal",
    "is_valid_transition",
    "stock_effect",
]
