"""montage status: watcher liveness, database and repository overview."""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.table import Table

from montage.cli.common import console, get_config, open_existing_db
from montage.cli.repos import STATUS_STYLE
from montage.db.store import ChangeLogStore
from montage.watch.daemon import SingletonController


def status_cmd(ctx: typer.Context) -> None:
    """Show whether the watcher is running and what it watches."""
    cfg = get_config(ctx)
    controller = SingletonController(cfg.marker_path)

    # ---- Panel 1: Watcher ----
    if controller.is_running():
        pid = controller.read_pid()
        shown = pid if pid is not None else "unknown pid"
        watcher = f"[green]●[/] montage is watching on pid [bold]{shown}[/]"
    else:
        watcher = "[dim]○[/] montage is not running  (start with: montage watch)"

    lines = [watcher]
    if cfg.db_path.exists():
        size_mb = cfg.db_path.stat().st_size / (1024 * 1024)
        lines.append(f"Database:  {cfg.db_path} ({size_mb:.1f} MB)")
    else:
        lines.append("[yellow]No database yet.[/]  Run:  montage init")
    lines.append(f"Interval:  {cfg.watch.interval:g}s")
    console.print(Panel("\n".join(lines), title="[bold]Watcher[/]", expand=False))

    # ---- Panel 2: Repositories ----
    if not cfg.db_path.exists():
        return
    conn = open_existing_db(cfg)
    try:
        store = ChangeLogStore(conn)
        repos = store.list_repositories()
        if not repos:
            console.print(
                Panel(
                    "[dim]No repositories yet.[/]\n  Run:  montage add <dir>",
                    title="[bold]Repositories[/]",
                    expand=False,
                )
            )
            return

        table = Table(show_header=True, box=None, padding=(0, 1))
        table.add_column("Path")
        table.add_column("Status")
        table.add_column("Documents", justify="right")
        table.add_column("Changes", justify="right")
        table.add_column("Events", justify="right")
        for repo in repos:
            docs = store.list_documents(repo.id)
            changes = sum(store.count_changes(d.id) for d in docs)
            table.add_row(
                repo.absolute_path,
                STATUS_STYLE[repo.status],
                str(len(docs)),
                str(changes),
                str(len(store.event_chain(repo.id))),
            )
        console.print(Panel(table, title="[bold]Repositories[/]", expand=False))
    finally:
        conn.close()
