"""montage database layer."""

from montage.db.connection import Database
from montage.db.migrations import MIGRATIONS, run_migrations
from montage.db.schema import initialize
from montage.db.store import ChangeLogStore

__all__ = [
    "ChangeLogStore",
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
