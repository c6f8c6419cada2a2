from __future__ import annotations

from pathlib import Path

import pandas as pd

from sellah.services.reports import export_orders, order_summary


def test_order_summary_excludes_cancelled_revenue(coordinator, context, make_product, make_order) -> None:  # noqa: ANN001
    make_product("P1", stock=10)
    kept = make_order([("P1", 2)], shipping_fee=50.0)
    dropped = make_order([("P1", 1)])
    coordinator.update_status(context, kept.id, "approved", actor_id="admin-1")
    coordinator.update_status(context, dropped.id, "cancelled", actor_id="admin-1")

    summary = order_summary(coordinator.repository, context)

    assert summary["total_orders"] == 2
    assert summary["by_status"]["approved"] == 1
    assert summary["by_status"]["cancelled"] == 1
    assert summary["total_revenue"] == 250.0
    assert summary["average_order_value"] == 250.0


def test_export_orders_writes_one_row_per_line_item(coordinator, context, make_order, tmp_path: Path) -> None:  # noqa: ANN001
    make_order([("P1", 2), ("P2", 1)])
    make_order([("P3", 1)])

    files = export_orders(coordinator.repository, context, formats=["csv"], out_dir=tmp_path / "exports")

    assert [path.suffix for path in files] == [".csv"]
    df = pd.read_csv(files[0], encoding="utf-8-sig")
    assert len(df) == 3
    assert set(df["product_id"]) == {"P1", "P2", "P3"}
    assert set(df["status"]) == {"pending"}
