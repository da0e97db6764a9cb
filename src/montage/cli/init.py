"""montage init: create the data directory and the change log.

Creates (under MONTAGE_HOME, default ~/.montage):
  config.yaml   commented defaults (mode 0o700 directory)
  database.db   empty change log with schema

If the database cannot be created, a data directory created by this run
is removed again so the next ``montage init`` starts clean.
"""

from __future__ import annotations

import shutil
import sqlite3

import typer

from montage.cli.common import console, get_config, open_db
from montage.cli.errors import err_storage
from montage.config import ensure_global_config
from montage.errors import StorageError


def init_cmd(ctx: typer.Context) -> None:
    """Create the data directory, default config and change log database."""
    cfg = get_config(ctx)
    home = cfg.home
    created_home = not home.exists()

    if cfg.db_path.exists():
        console.print(
            f"[yellow]⚠[/]  Database already exists, existing history is preserved: {cfg.db_path}"
        )

    try:
        cfg_path = ensure_global_config(home)
        conn = open_db(cfg.db_path)
        conn.close()
    except (OSError, sqlite3.Error, StorageError) as exc:
        if created_home:
            shutil.rmtree(home, ignore_errors=True)
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)

    console.print(f"  [green]✓[/] {cfg_path}")
    console.print(f"  [green]✓[/] {cfg.db_path}")
    console.print("\nNext steps:")
    console.print("  1. montage add <repository-dir>   (choose what to watch)")
    console.print("  2. montage watch                  (start recording history)")
    console.print("  3. montage history <file>         (browse a file's versions)")
