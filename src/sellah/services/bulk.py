from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sellah.core.context import TenantContext
from sellah.core.models import OrderStatus
from sellah.services.orders import OrderStatusCoordinator


@dataclass(slots=True)
class StatusUpdate:
    order_id: str
    new_status: OrderStatus | str
    actor_id: str
    actor_name: str | None = None
    reason: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_actor: str | None = None) -> StatusUpdate:
        actor_id = data.get("actor_id") or default_actor
        if not data.get("order_id") or not data.get("status") or not actor_id:
            raise ValueError(f"Status update requires order_id, status and actor_id: {data!r}")
        return cls(
            order_id=str(data["order_id"]),
            new_status=str(data["status"]),
            actor_id=str(actor_id),
            actor_name=data.get("actor_name"),
            reason=data.get("reason"),
        )


@dataclass(slots=True)
class BulkFailure:
    order_id: str
    error: str
    error_type: str


@dataclass(slots=True)
class BulkResult:
    success: list[str] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def as_stats(self) -> dict[str, int]:
        return {"success": len(self.success), "failed": len(self.failed), "skipped": len(self.skipped)}


class BulkStatusDriver:
    """Applies many status updates one after another; one failure never stops the rest."""

    def __init__(
        self,
        coordinator: OrderStatusCoordinator,
        logger: logging.Logger | logging.LoggerAdapter,
        max_items: int | None = None,
    ):
        self.coordinator = coordinator
        self.logger = logger
        self.max_items = max_items

    def apply_bulk(
        self,
        context: TenantContext,
        updates: Iterable[StatusUpdate],
        cancel_event: threading.Event | None = None,
    ) -> BulkResult:
        pending = list(updates)
        if self.max_items is not None and len(pending) > self.max_items:
            raise ValueError(f"Bulk update accepts at most {self.max_items} items, got {len(pending)}")

        result = BulkResult()
        for index, update in enumerate(pending):
            if cancel_event is not None and cancel_event.is_set():
                result.skipped.extend(item.order_id for item in pending[index:])
                self.logger.warning("Bulk update cancelled, %s items skipped", len(pending) - index)
                break
            try:
                self.coordinator.update_status(
                    context,
                    update.order_id,
                    update.new_status,
                    actor_id=update.actor_id,
                    actor_name=update.actor_name,
                    reason=update.reason,
                )
                result.success.append(update.order_id)
            except Exception as exc:  # noqa: BLE001
                result.failed.append(
                    BulkFailure(order_id=update.order_id, error=str(exc), error_type=type(exc).__name__)
                )
                self.logger.warning("Bulk update failed for %s: %s", update.order_id, exc)

        self.logger.info("Bulk update finished: %s", result.as_stats())
        return result
