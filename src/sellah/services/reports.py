from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from sellah.core.context import TenantContext
from sellah.core.models import OrderStatus, round_money
from sellah.core.orders import OrderRepository

EXCLUDED_FROM_REVENUE = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED, OrderStatus.REFUNDED})

EXPORT_COLUMNS = [
    "order_id",
    "order_number",
    "customer_id",
    "status",
    "payment_status",
    "created_at",
    "product_id",
    "variation_id",
    "product_name",
    "variation_name",
    "quantity",
    "unit_price",
    "line_total",
    "order_total",
    "currency",
]


def order_summary(repository: OrderRepository, context: TenantContext) -> dict[str, Any]:
    orders = repository.list_orders(context, limit=None)
    by_status = {status.value: 0 for status in OrderStatus}
    revenue = 0.0
    counted = 0
    for order in orders:
        by_status[order.status.value] += 1
        if order.status not in EXCLUDED_FROM_REVENUE:
            revenue += order.total_amount
            counted += 1

    return {
        "total_orders": len(orders),
        "by_status": by_status,
        "total_revenue": round_money(revenue),
        "average_order_value": round_money(revenue / counted) if counted else 0.0,
    }


def _export_rows(
    repository: OrderRepository,
    context: TenantContext,
    since: datetime | None = None,
) -> list[dict[str, Any]]:
    cutoff = since.astimezone(timezone.utc).isoformat(timespec="microseconds") if since else None
    rows: list[dict[str, Any]] = []
    for order in repository.list_orders(context, limit=None):
        if cutoff is not None and order.created_at < cutoff:
            continue
        for item in order.items:
            rows.append(
                {
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "customer_id": order.customer_id,
                    "status": order.status.value,
                    "payment_status": order.payment_status,
                    "created_at": order.created_at,
                    "product_id": item.product_id,
                    "variation_id": item.variation_id,
                    "product_name": item.product_name,
                    "variation_name": item.variation_name,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "line_total": item.line_total,
                    "order_total": order.total_amount,
                    "currency": order.currency,
                }
            )
    return rows


def export_orders(
    repository: OrderRepository,
    context: TenantContext,
    formats: list[str],
    out_dir: Path,
    since: datetime | None = None,
) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(_export_rows(repository, context, since), columns=EXPORT_COLUMNS)
    stem = f"sellah_orders_{context.tenant_id}"

    created_files: list[Path] = []
    if "csv" in formats:
        csv_path = (out_dir / f"{stem}.csv").resolve()
        df.to_csv(csv_path, index=False, encoding="utf-8-sig")
        created_files.append(csv_path)

    if "xlsx" in formats:
        xlsx_path = (out_dir / f"{stem}.xlsx").resolve()
        with pd.ExcelWriter(xlsx_path, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="orders")
        created_files.append(xlsx_path)

    return created_files
