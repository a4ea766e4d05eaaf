import sqlite3
from pathlib import Path

import pytest

import portal.config as config_module
from portal.bootstrap import BootstrapError, Bootstrapper
from portal.config import AppConfig
from portal.services.kvstore import KV_TABLE


def test_bootstrapper_raises_when_storage_directory_unwritable(
    tmp_path: Path, monkeypatch
) -> None:
    storage_root = tmp_path / "storage"
    config = AppConfig(storage_root=storage_root, database_file=storage_root / "portal.db")

    original_ensure = config_module._ensure_writable_directory

    def fake_ensure(path: Path) -> bool:
        if path.resolve() == storage_root.resolve():
            return False
        return original_ensure(path)

    monkeypatch.setattr(config_module, "_ensure_writable_directory", fake_ensure)

    with pytest.raises(BootstrapError) as excinfo:
        Bootstrapper(config).initialize()

    assert "storage" in str(excinfo.value).lower()


def test_bootstrapper_creates_key_value_table(temp_config: AppConfig) -> None:
    connection = sqlite3.connect(temp_config.database_file)
    try:
        rows = connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (KV_TABLE,),
        ).fetchall()
    finally:
        connection.close()

    assert rows == [(KV_TABLE,)]
    assert temp_config.log_root.is_dir()
