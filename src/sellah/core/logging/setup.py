from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger


class ContextFilter(logging.Filter):
    """Stamps every record with the run's correlation id and tenant id."""

    def __init__(self, correlation_id: str, tenant_id: str):
        super().__init__()
        self._correlation_id = correlation_id
        self._tenant_id = tenant_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = self._correlation_id
        if not hasattr(record, "tenant_id"):
            record.tenant_id = self._tenant_id
        return True


def configure_logging(
    log_dir: Path,
    correlation_id: str,
    tenant_id: str,
    level: int = logging.INFO,
) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    utc_day = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    text_path = log_dir / f"sellah-{utc_day}.log"
    json_path = log_dir / f"sellah-{utc_day}.jsonl"

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    context_filter = ContextFilter(correlation_id, tenant_id)

    text_formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(tenant_id)s:%(correlation_id)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    json_formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(tenant_id)s %(correlation_id)s %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(text_formatter)
    stream_handler.addFilter(context_filter)
    stream_handler.setLevel(logging.WARNING)

    text_handler = logging.FileHandler(text_path, encoding="utf-8")
    text_handler.setFormatter(text_formatter)
    text_handler.addFilter(context_filter)

    json_handler = logging.FileHandler(json_path, encoding="utf-8")
    json_handler.setFormatter(json_formatter)
    json_handler.addFilter(context_filter)

    root.addHandler(stream_handler)
    root.addHandler(text_handler)
    root.addHandler(json_handler)


def get_logger(name: str, correlation_id: str, tenant_id: str) -> logging.LoggerAdapter:
    base_logger = logging.getLogger(name)
    return logging.LoggerAdapter(
        base_logger,
        extra={"correlation_id": correlation_id, "tenant_id": tenant_id},
    )
