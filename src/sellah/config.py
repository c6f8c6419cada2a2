from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_TENANT_ID = "default"
DEFAULT_CURRENCY = "PHP"


@dataclass(slots=True)
class Settings:
    root_dir: Path
    data_dir: Path
    db_path: Path
    logs_dir: Path
    exports_dir: Path
    tenant_id: str = DEFAULT_TENANT_ID
    currency: str = DEFAULT_CURRENCY
    db_timeout_sec: float = 5.0
    activity_limit: int = 100
    bulk_max_items: int = 500

    @classmethod
    def load(cls, base_dir: Path | None = None) -> Settings:
        load_dotenv(override=False)

        root_env = os.getenv("SELLAH_HOME")
        root_dir = Path(root_env).expanduser().resolve() if root_env else (base_dir or Path.cwd()).resolve()

        data_dir = Path(os.getenv("SELLAH_DATA_DIR", root_dir / "data")).expanduser().resolve()
        db_path = Path(os.getenv("SELLAH_DB_PATH", data_dir / "sellah.sqlite3")).expanduser().resolve()
        logs_dir = Path(os.getenv("SELLAH_LOG_DIR", root_dir / "logs")).expanduser().resolve()
        exports_dir = Path(os.getenv("SELLAH_EXPORT_DIR", root_dir / "exports")).expanduser().resolve()

        tenant_id = os.getenv("SELLAH_TENANT_ID", "").strip() or DEFAULT_TENANT_ID
        currency = os.getenv("SELLAH_CURRENCY", "").strip().upper() or DEFAULT_CURRENCY

        db_timeout_sec = float(os.getenv("SELLAH_DB_TIMEOUT_SEC", "5"))
        activity_limit = int(os.getenv("SELLAH_ACTIVITY_LIMIT", "100"))
        bulk_max_items = int(os.getenv("SELLAH_BULK_MAX_ITEMS", "500"))

        if db_timeout_sec <= 0:
            raise ValueError("SELLAH_DB_TIMEOUT_SEC must be positive")
        if activity_limit <= 0 or bulk_max_items <= 0:
            raise ValueError("SELLAH_ACTIVITY_LIMIT and SELLAH_BULK_MAX_ITEMS must be positive")

        return cls(
            root_dir=root_dir,
            data_dir=data_dir,
            db_path=db_path,
            logs_dir=logs_dir,
            exports_dir=exports_dir,
            tenant_id=tenant_id,
            currency=currency,
            db_timeout_sec=db_timeout_sec,
            activity_limit=activity_limit,
            bulk_max_items=bulk_max_items,
        )

    def ensure_directories(self) -> None:
        for path in [self.root_dir, self.data_dir, self.logs_dir, self.exports_dir]:
            path.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
