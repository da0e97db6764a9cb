"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from montage.db.connection import Database
from montage.db.schema import initialize
from montage.db.store import ChangeLogStore


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep a developer's MONTAGE_* settings out of the tests."""
    for name in ("MONTAGE_HOME", "MONTAGE_INTERVAL", "MONTAGE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "database.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    return ChangeLogStore(tmp_db)
