from __future__ import annotations

from pathlib import Path

import pytest

from sellah.config import DEFAULT_TENANT_ID, Settings


def test_settings_defaults_to_paths_under_base_dir(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    for name in ["SELLAH_HOME", "SELLAH_DB_PATH", "SELLAH_DATA_DIR", "SELLAH_TENANT_ID", "SELLAH_CURRENCY"]:
        monkeypatch.delenv(name, raising=False)

    settings = Settings.load(base_dir=tmp_path)

    assert settings.root_dir == tmp_path.resolve()
    assert settings.db_path == (tmp_path / "data" / "sellah.sqlite3").resolve()
    assert settings.tenant_id == DEFAULT_TENANT_ID
    assert settings.currency == "PHP"
    assert settings.bulk_max_items == 500


def test_settings_reads_tenant_and_limits_from_env(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    monkeypatch.setenv("SELLAH_HOME", str(tmp_path))
    monkeypatch.setenv("SELLAH_TENANT_ID", "shop-b")
    monkeypatch.setenv("SELLAH_CURRENCY", "usd")
    monkeypatch.setenv("SELLAH_ACTIVITY_LIMIT", "25")
    monkeypatch.setenv("SELLAH_DB_TIMEOUT_SEC", "1.5")

    settings = Settings.load()

    assert settings.root_dir == tmp_path.resolve()
    assert settings.tenant_id == "shop-b"
    assert settings.currency == "USD"
    assert settings.activity_limit == 25
    assert settings.db_timeout_sec == 1.5


def test_settings_rejects_non_positive_timeout(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    monkeypatch.setenv("SELLAH_DB_TIMEOUT_SEC", "0")

    with pytest.raises(ValueError):
        Settings.load(base_dir=tmp_path)
