from __future__ import annotations

import json
import logging
import subprocess
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer
from dateutil import parser as dt_parser
from rich import print

from sellah.config import Settings
from sellah.core.context import TenantContext
from sellah.core.db import DocumentStore
from sellah.core.logging import configure_logging, get_logger
from sellah.core.models import ActivityKind
from sellah.core.stock.ledger import PRODUCTS_COLLECTION
from sellah.errors import SellahError
from sellah.services import (
    BulkStatusDriver,
    OrderStatusCoordinator,
    StatusUpdate,
    export_orders,
    order_summary,
    run_doctor_checks,
)

app = typer.Typer(no_args_is_help=True, help="Sellah CLI: order lifecycle operations for a storefront")


@dataclass(slots=True)
class Session:
    settings: Settings
    store: DocumentStore
    context: TenantContext
    logger: logging.Logger | logging.LoggerAdapter
    coordinator: OrderStatusCoordinator


def _load_settings(base_dir: Path | None = None) -> Settings:
    settings = Settings.load(base_dir=base_dir)
    settings.ensure_directories()
    return settings


def _parse_since(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = dt_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise typer.BadParameter(f"File not found: {path}")
    with path.open("r", encoding="utf-8-sig") as fh:
        return json.load(fh)


@contextmanager
def _session(logger_name: str, tenant: str | None = None) -> Iterator[Session]:
    settings = _load_settings()
    context = TenantContext(tenant_id=tenant or settings.tenant_id, correlation_id=uuid.uuid4().hex)
    configure_logging(settings.logs_dir, correlation_id=context.correlation_id, tenant_id=context.tenant_id)
    logger = get_logger(logger_name, context.correlation_id, context.tenant_id)

    try:
        with DocumentStore(settings.db_path, timeout_sec=settings.db_timeout_sec) as store:
            store.migrate()
            coordinator = OrderStatusCoordinator.from_store(store, logger, currency=settings.currency)
            yield Session(settings, store, context, logger, coordinator)
    except (SellahError, ValueError) as exc:
        logger.error("%s failed: %s", logger_name, exc)
        print(f"[red]{exc.__class__.__name__}[/red]: {exc}")
        raise typer.Exit(1) from exc


@app.command("init")
def init_command(
    base_dir: Path | None = typer.Option(None, help="Project root (defaults to the current directory)"),
) -> None:
    settings = _load_settings(base_dir=base_dir)
    with DocumentStore(settings.db_path, timeout_sec=settings.db_timeout_sec) as store:
        executed = store.migrate()
    print(f"[green]Initialized[/green]. DB: {settings.db_path}")
    print(f"Migrations: {executed if executed else 'none pending'}")


@app.command("seed")
def seed_command(
    file: Path = typer.Argument(..., help="JSON file with `products` and `orders` lists"),
    tenant: str | None = typer.Option(None, help="Tenant id (defaults to SELLAH_TENANT_ID)"),
) -> None:
    payload = _read_json(file)
    if not isinstance(payload, dict):
        raise typer.BadParameter("Seed file must contain a JSON object")

    with _session("sellah.seed", tenant) as session:
        products = payload.get("products") or []
        for product in products:
            product_id = product.get("id")
            if not product_id:
                raise typer.BadParameter(f"Product without id: {product!r}")
            session.store.set(session.context, PRODUCTS_COLLECTION, str(product_id), product)

        created = []
        for order in payload.get("orders") or []:
            created.append(
                session.coordinator.create_order(
                    session.context,
                    customer_id=order["customer_id"],
                    items=order.get("items") or [],
                    shipping_fee=float(order.get("shipping_fee", 0.0)),
                    tax_amount=float(order.get("tax_amount", 0.0)),
                    currency=order.get("currency"),
                    shipping_address=order.get("shipping_address"),
                    delivery_method=order.get("delivery_method", "delivery"),
                )
            )

    print(f"[green]Seed complete[/green]. tenant={session.context.tenant_id}")
    print(f"- products: {len(products)}")
    print(f"- orders: {len(created)}")
    for order in created:
        print(f"  {order.id} {order.order_number} {order.total_amount:.2f} {order.currency}")


@app.command("status")
def status_command(
    order_id: str = typer.Argument(...),
    status: str = typer.Argument(..., help="Target status, e.g. approved"),
    actor: str = typer.Option("system", help="Acting user id"),
    actor_name: str | None = typer.Option(None, help="Acting user display name"),
    reason: str | None = typer.Option(None, help="Reason stored in the status history"),
    note: str | None = typer.Option(None, help="Note appended to the order"),
    tenant: str | None = typer.Option(None),
) -> None:
    with _session("sellah.orders", tenant) as session:
        old_status = session.coordinator.get_order(session.context, order_id).status.value
        order = session.coordinator.update_status(
            session.context,
            order_id,
            status,
            actor_id=actor,
            actor_name=actor_name,
            reason=reason,
            note=note,
        )
    print(f"[green]Status updated[/green]: {order.order_number} {old_status} -> {order.status.value}")


@app.command("approve-payment")
def approve_payment_command(
    order_id: str = typer.Argument(...),
    actor: str = typer.Option("system", help="Acting user id"),
    tenant: str | None = typer.Option(None),
) -> None:
    with _session("sellah.orders", tenant) as session:
        order = session.coordinator.approve_payment(session.context, order_id, actor_id=actor)
    print(f"[green]Payment approved[/green]: {order.order_number}")


@app.command("out-for-delivery")
def out_for_delivery_command(
    order_id: str = typer.Argument(...),
    actor: str = typer.Option("system", help="Acting user id"),
    tenant: str | None = typer.Option(None),
) -> None:
    with _session("sellah.orders", tenant) as session:
        order = session.coordinator.mark_out_for_delivery(session.context, order_id, actor_id=actor)
    print(f"[green]Out for delivery[/green]: {order.order_number}")


@app.command("bulk")
def bulk_command(
    file: Path = typer.Argument(..., help="JSON list of {order_id, status, actor_id?, reason?}"),
    actor: str = typer.Option("system", help="Actor for entries without actor_id"),
    tenant: str | None = typer.Option(None),
) -> None:
    payload = _read_json(file)
    if not isinstance(payload, list):
        raise typer.BadParameter("Bulk file must contain a JSON list")
    updates: list[StatusUpdate] = []
    for index, entry in enumerate(payload, start=1):
        if not isinstance(entry, dict):
            raise typer.BadParameter(f"Invalid bulk entry {index}: expected an object, got {entry!r}")
        try:
            updates.append(StatusUpdate.from_dict(entry, default_actor=actor))
        except ValueError as exc:
            raise typer.BadParameter(f"Invalid bulk entry {index}: {exc}") from exc

    with _session("sellah.bulk", tenant) as session:
        driver = BulkStatusDriver(
            session.coordinator,
            session.logger,
            max_items=session.settings.bulk_max_items,
        )
        result = driver.apply_bulk(session.context, updates)

    print(f"[green]Bulk update finished[/green]. correlation_id={session.context.correlation_id}")
    for key, value in result.as_stats().items():
        print(f"- {key}: {value}")
    for failure in result.failed:
        print(f"  [red]{failure.order_id}[/red] {failure.error_type}: {failure.error}")
    if result.failed:
        raise typer.Exit(1)


@app.command("stock")
def stock_command(
    product_id: str = typer.Argument(...),
    variation: str | None = typer.Option(None, help="Variation id"),
    tenant: str | None = typer.Option(None),
) -> None:
    with _session("sellah.stock", tenant) as session:
        quantity = session.coordinator.ledger.get_stock(session.context, product_id, variation)
    target = product_id if not variation else f"{product_id}/{variation}"
    print(f"{target}: {quantity}")


@app.command("activities")
def activities_command(
    order_id: str = typer.Argument(...),
    type: str | None = typer.Option(None, help="Filter by activity type, e.g. status_change"),
    limit: int | None = typer.Option(None, help="Max rows (defaults to SELLAH_ACTIVITY_LIMIT)"),
    tenant: str | None = typer.Option(None),
) -> None:
    try:
        activity_type = ActivityKind(type) if type else None
    except ValueError as exc:
        raise typer.BadParameter(f"Unknown activity type: {type}") from exc

    with _session("sellah.activities", tenant) as session:
        activities = session.coordinator.recorder.list_activities(
            session.context,
            order_id,
            activity_type=activity_type,
            limit=limit or session.settings.activity_limit,
        )
        summary = session.coordinator.recorder.lifecycle_summary(session.context, order_id)

    print(f"Activities for {order_id}: {len(activities)}")
    for activity in activities:
        change = f" {activity.old_value} -> {activity.new_value}" if activity.old_value or activity.new_value else ""
        print(f"- {activity.timestamp} ({activity.activity_type.value}){change} by {activity.user_id}: {activity.description}")
    print(f"Status changes: {summary['total_status_changes']}, current: {summary['current_status']}")


@app.command("notifications")
def notifications_command(
    user_id: str = typer.Argument(...),
    unread: bool = typer.Option(False, "--unread/--all", help="Only unread notifications"),
    mark_read: bool = typer.Option(False, "--mark-read", help="Mark all listed notifications as read"),
    tenant: str | None = typer.Option(None),
) -> None:
    with _session("sellah.notifications", tenant) as session:
        notifications = session.coordinator.notifications.list_for_user(session.context, user_id, unread_only=unread)
        marked = session.coordinator.notifications.mark_all_as_read(session.context, user_id) if mark_read else 0

    print(f"Notifications for {user_id}: {len(notifications)}")
    for notification in notifications:
        flag = " " if notification.is_read else "*"
        print(f"{flag} {notification.created_at} ({notification.type.value}) {notification.title}: {notification.content}")
    if mark_read:
        print(f"[green]Marked as read[/green]: {marked}")


@app.command("summary")
def summary_command(tenant: str | None = typer.Option(None)) -> None:
    with _session("sellah.reports", tenant) as session:
        summary = order_summary(session.coordinator.repository, session.context)
        counts = session.store.fetch_counts(session.context)

    print(f"Orders: {summary['total_orders']}")
    for status, count in summary["by_status"].items():
        if count:
            print(f"- {status}: {count}")
    print(f"Revenue: {summary['total_revenue']:.2f} (average {summary['average_order_value']:.2f})")
    print("Collections:")
    for collection, count in counts.items():
        print(f"- {collection}: {count}")


@app.command("export")
def export_command(
    format: str = typer.Option("xlsx,csv", help="Comma separated formats: xlsx,csv"),
    out: Path | None = typer.Option(None, help="Export folder"),
    since: str | None = typer.Option(None, help="Only orders created at or after this date/time"),
    tenant: str | None = typer.Option(None),
) -> None:
    formats = [item.strip().lower() for item in format.split(",") if item.strip()]
    supported = {"xlsx", "csv"}
    unknown = [item for item in formats if item not in supported]
    if unknown:
        raise typer.BadParameter(f"Unsupported formats: {unknown}")

    since_dt = _parse_since(since)
    with _session("sellah.reports", tenant) as session:
        out_dir = (out or session.settings.exports_dir).resolve()
        files = export_orders(
            session.coordinator.repository,
            session.context,
            formats=formats,
            out_dir=out_dir,
            since=since_dt,
        )

    print("[green]Export complete[/green]")
    for file_path in files:
        print(f"- {file_path}")


@app.command("doctor")
def doctor_command() -> None:
    settings = _load_settings()
    checks = run_doctor_checks(settings)

    print("Doctor results:")
    for check in checks:
        status = check["status"].upper()
        print(f"- {status:<4} {check['check']}: {check['detail']}")
    if any(check["status"] == "fail" for check in checks):
        raise typer.Exit(1)


@app.command("tests")
def tests_command() -> None:
    result = subprocess.run([sys.executable, "-m", "pytest", "-q"], check=False)
    if result.returncode != 0:
        raise typer.Exit(result.returncode)
    print("[green]Tests passed[/green]")


if __name__ == "__main__":
    app()
