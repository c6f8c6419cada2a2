from __future__ import annotations

import platform
import sys
from pathlib import Path

from sellah.config import Settings
from sellah.core.db import DocumentStore
from sellah.core.db.migrations import applied_migrations
from sellah.core.orders.transitions import check_transition_table


def _pending_migrations(store: DocumentStore) -> list[str]:
    migrations_dir = Path(__file__).resolve().parents[1] / "core" / "db" / "migrations"
    applied = applied_migrations(store.connection)
    return [path.name for path in sorted(migrations_dir.glob("*.sql")) if path.name not in applied]


def run_doctor_checks(settings: Settings) -> list[dict[str, str]]:
    checks: list[dict[str, str]] = []

    checks.append(
        {
            "check": "python_version",
            "status": "ok" if sys.version_info >= (3, 11) else "warn",
            "detail": platform.python_version(),
        }
    )

    checks.append(
        {
            "check": "db_parent",
            "status": "ok" if settings.db_path.parent.exists() else "warn",
            "detail": str(settings.db_path.parent),
        }
    )

    checks.append(
        {
            "check": "logs_dir",
            "status": "ok" if settings.logs_dir.exists() else "warn",
            "detail": str(settings.logs_dir),
        }
    )

    try:
        check_transition_table()
        checks.append({"check": "transition_table", "status": "ok", "detail": "complete"})
    except Exception as exc:  # noqa: BLE001
        checks.append({"check": "transition_table", "status": "fail", "detail": str(exc)})

    if settings.db_path.exists():
        try:
            with DocumentStore(settings.db_path, timeout_sec=settings.db_timeout_sec) as store:
                pending = _pending_migrations(store)
            checks.append(
                {
                    "check": "migrations",
                    "status": "ok" if not pending else "warn",
                    "detail": "up to date" if not pending else f"pending: {', '.join(pending)}",
                }
            )
        except Exception as exc:  # noqa: BLE001
            checks.append({"check": "database", "status": "fail", "detail": str(exc)})
    else:
        checks.append(
            {
                "check": "database",
                "status": "warn",
                "detail": f"{settings.db_path} does not exist, run `sellah init`",
            }
        )

    checks.append(
        {
            "check": "tenant",
            "status": "ok",
            "detail": f"{settings.tenant_id} ({settings.currency})",
        }
    )

    return checks
