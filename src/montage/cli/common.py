"""Helpers shared by the montage commands."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from montage.cli.errors import err_config, err_not_initialized, err_repo_not_registered
from montage.config import ConfigError, MontageConfig, load_config
from montage.db.connection import Database
from montage.db.models import Repository
from montage.db.schema import initialize, is_initialized
from montage.db.store import ChangeLogStore

console = Console()


def get_config(ctx: typer.Context) -> MontageConfig:
    """Load config for the ``--home`` given to the root command (exit 1 on error)."""
    home = (ctx.obj or {}).get("home")
    try:
        return load_config(home)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def setup_logging(level: str) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open the change log and run pending migrations."""
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def open_existing_db(cfg: MontageConfig, write: bool = False) -> sqlite3.Connection:
    """Open the change log, or print the init hint and exit 1 if it is missing.

    Readers (*write* False) never migrate: the schema must already be there.
    """
    if not cfg.db_path.exists():
        console.print(err_not_initialized(str(cfg.home)))
        raise typer.Exit(1)
    if write:
        return open_db(cfg.db_path)
    conn = Database(cfg.db_path).connect()
    if not is_initialized(conn):
        conn.close()
        console.print(err_not_initialized(str(cfg.home)))
        raise typer.Exit(1)
    return conn


def require_repository(store: ChangeLogStore, path: Path) -> Repository:
    """Resolve *path* to a registered repository or exit 1."""
    canonical = str(path.expanduser().resolve())
    repo = store.get_repository_by_path(canonical)
    if repo is None:
        console.print(err_repo_not_registered(str(path)))
        raise typer.Exit(1)
    return repo
