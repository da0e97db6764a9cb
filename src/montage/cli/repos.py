"""montage add / enable / disable / list: manage watched repositories."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from montage.cli.common import console, get_config, open_existing_db, require_repository
from montage.cli.errors import err_not_a_directory
from montage.db.models import RepoStatus
from montage.db.store import ChangeLogStore

STATUS_STYLE = {
    RepoStatus.ACTIVE: "[green]active[/]",
    RepoStatus.STARTING: "[yellow]starting[/]",
    RepoStatus.INACTIVE: "[dim]inactive[/]",
}


def add_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Repository root to watch.")],
) -> None:
    """Register a directory whose text files should be tracked."""
    cfg = get_config(ctx)
    try:
        root = path.expanduser().resolve(strict=True)
    except OSError:
        root = None
    if root is None or not root.is_dir():
        console.print(err_not_a_directory(str(path)))
        raise typer.Exit(1)

    conn = open_existing_db(cfg, write=True)
    try:
        _, created = ChangeLogStore(conn).add_repository(str(root))
    finally:
        conn.close()

    if created:
        console.print(f"[green]✓[/] Added repository at {root}")
    else:
        console.print(f"[dim]Repository is already added:[/] {root}")


def enable_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Registered repository root.")],
) -> None:
    """Resume watching a disabled repository."""
    _set_status(ctx, path, RepoStatus.STARTING, "Enabled")


def disable_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Registered repository root.")],
) -> None:
    """Stop watching a repository (its history is kept)."""
    _set_status(ctx, path, RepoStatus.INACTIVE, "Disabled")


def _set_status(ctx: typer.Context, path: Path, status: RepoStatus, verb: str) -> None:
    cfg = get_config(ctx)
    conn = open_existing_db(cfg, write=True)
    try:
        store = ChangeLogStore(conn)
        repo = require_repository(store, path)
        if status is RepoStatus.STARTING and repo.status is not RepoStatus.INACTIVE:
            console.print(f"[dim]Already enabled:[/] {repo.absolute_path}")
            return
        store.set_repository_status(repo.id, status)
    finally:
        conn.close()
    console.print(f"[green]✓[/] {verb} {repo.absolute_path}")


def list_cmd(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Argument(help="Repository root; lists its documents instead of repositories."),
    ] = None,
) -> None:
    """List watched repositories, or the tracked documents of one."""
    cfg = get_config(ctx)
    conn = open_existing_db(cfg)
    try:
        store = ChangeLogStore(conn)
        if path is None:
            _list_repositories(store)
        else:
            _list_documents(store, require_repository(store, path).id)
    finally:
        conn.close()


def _list_repositories(store: ChangeLogStore) -> None:
    repos = store.list_repositories()
    if not repos:
        console.print("[dim]No repositories yet.[/]  Run:  montage add <dir>")
        return
    table = Table(title="Repositories")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Documents", justify="right")
    for repo in repos:
        table.add_row(
            str(repo.id),
            repo.absolute_path,
            STATUS_STYLE[repo.status],
            str(len(store.list_documents(repo.id))),
        )
    console.print(table)


def _list_documents(store: ChangeLogStore, repo_id: int) -> None:
    docs = store.list_documents(repo_id)
    if not docs:
        console.print("[dim]No documents tracked yet.[/]")
        return
    table = Table(title="Documents")
    table.add_column("Path")
    table.add_column("Changes", justify="right")
    for doc in docs:
        table.add_row(doc.relative_path, str(store.count_changes(doc.id)))
    console.print(table)
