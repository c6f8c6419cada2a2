from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

ORDER_NUMBER_PREFIX = "SL"


def _normalize_part(part: Any) -> str:
    if part is None:
        return ""
    if isinstance(part, datetime):
        return part.isoformat()
    if isinstance(part, Decimal):
        return format(part, "f")
    return str(part).strip().lower()


def stable_hash(*parts: Any) -> str:
    payload = "||".join(_normalize_part(part) for part in parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_order_number(
    tenant_id: str,
    customer_id: str | None,
    created_at: datetime | None = None,
    salt: str | None = None,
) -> str:
    """Human readable order number, e.g. ``SL-20261019-4F0A9C``.

    Two orders may share a number; the document id is the identity.
    """
    moment = created_at or datetime.now(timezone.utc)
    digest = stable_hash("order-number", tenant_id, customer_id, moment, salt or uuid.uuid4().hex)
    return f"{ORDER_NUMBER_PREFIX}-{moment.strftime('%Y%m%d')}-{digest[:6].upper()}"
