"""Database schema initialization."""

from __future__ import annotations

import sqlite3

CURRENT_VERSION = 1

TABLES = ("repositories", "documents", "events", "changes")


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    from montage.db.migrations import run_migrations

    run_migrations(conn)


def is_initialized(conn: sqlite3.Connection) -> bool:
    """Return True if every change log table exists."""
    placeholders = ",".join("?" * len(TABLES))
    rows = conn.execute(
        f"SELECT name FROM sqlite_master WHERE type = 'table' AND name IN ({placeholders})",
        TABLES,
    ).fetchall()
    return len(rows) == len(TABLES)
