from __future__ import annotations

import re
from datetime import datetime, timezone

from sellah.core.numbering import build_order_number, stable_hash


def test_stable_hash_normalizes_case_and_whitespace() -> None:
    assert stable_hash(" Shop-A ", "Customer") == stable_hash("shop-a", "customer")
    assert stable_hash("a", None) == stable_hash("a", "")


def test_order_number_format_and_salt() -> None:
    moment = datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)

    first = build_order_number("shop-a", "customer-1", moment, salt="x")
    second = build_order_number("shop-a", "customer-1", moment, salt="x")
    other = build_order_number("shop-a", "customer-1", moment, salt="y")

    assert re.fullmatch(r"SL-20260309-[0-9A-F]{6}", first)
    assert first == second
    assert first != other
