"""montage watch / stop: run or stop the single watcher process.

``watch`` runs in the foreground until ``montage stop`` (from any shell)
deletes the liveness marker, or until SIGINT / SIGTERM. A change log
failure stops the watcher with a diagnostic and removes the marker.

With ``watch.notifier`` (or ``--notify``) the watcher examines only the
paths the OS reports as changed, plus a full rescan every
``watch.rescan_every`` ticks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from montage.cli.common import console, get_config, open_db, setup_logging
from montage.cli.errors import err_already_running, err_storage
from montage.db.models import RepoStatus
from montage.db.store import ChangeLogStore
from montage.errors import AlreadyRunningError, StorageError
from montage.watch.daemon import SingletonController
from montage.watch.notifier import FileNotifier
from montage.watch.scheduler import WatchScheduler
from montage.watch.sources import ChangeSource, EventQueueSource, PollingSource
from montage.watch.walker import WalkOptions


def watch_cmd(
    ctx: typer.Context,
    interval: Annotated[
        float | None,
        typer.Option("--interval", "-i", min=0.05, help="Seconds between ticks (overrides config)."),
    ] = None,
    notify: Annotated[
        bool | None,
        typer.Option(
            "--notify/--poll",
            help="Use OS file notifications with periodic rescans, or poll every tick (overrides config).",
        ),
    ] = None,
) -> None:
    """Record changes to every watched repository until stopped."""
    cfg = get_config(ctx)
    setup_logging(cfg.logging.level)
    tick_interval = interval if interval is not None else cfg.watch.interval
    use_notifier = notify if notify is not None else cfg.watch.notifier
    controller = SingletonController(cfg.marker_path, interval=tick_interval)
    connections = []
    notifiers: list[FileNotifier] = []

    def bootstrap() -> WatchScheduler:
        conn = open_db(cfg.db_path)
        connections.append(conn)
        store = ChangeLogStore(conn)
        repositories = store.list_repositories()
        if not repositories:
            console.print(
                "[yellow]No repositories registered yet.[/]  Run:  montage add <dir>"
            )
        options = WalkOptions(
            max_file_size=cfg.watch.max_file_size,
            ignore=cfg.watch.ignore,
            ignore_files=cfg.watch.ignore_files,
            skip_hidden=cfg.watch.skip_hidden,
        )
        source: ChangeSource
        if use_notifier:
            source = EventQueueSource(options, rescan_every=cfg.watch.rescan_every)
            roots = [
                Path(r.absolute_path)
                for r in repositories
                if r.status != RepoStatus.INACTIVE and Path(r.absolute_path).is_dir()
            ]
            notifier = FileNotifier(source, roots)
            notifiers.append(notifier)
            notifier.start()
            mode = f"file events, full rescan every {cfg.watch.rescan_every} ticks"
        else:
            source = PollingSource(options)
            mode = "polling"
        console.print(f"Watching (every {tick_interval:g}s), stop with [bold]montage stop[/]")
        console.print(f"[dim]Mode: {mode}[/]")
        return WatchScheduler(store, source)

    try:
        ticks = controller.start(bootstrap)
    except AlreadyRunningError as exc:
        console.print(err_already_running(exc.pid))
        raise typer.Exit(1)
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)
    finally:
        for notifier in notifiers:
            notifier.stop()
        for conn in connections:
            conn.close()

    console.print(f"[dim]Watcher stopped after {ticks} ticks.[/]")


def stop_cmd(ctx: typer.Context) -> None:
    """Ask the running watcher to exit (within one tick interval)."""
    cfg = get_config(ctx)
    controller = SingletonController(cfg.marker_path)
    pid = controller.read_pid()
    if not controller.stop():
        console.print("[dim]montage is not running.[/]")
        return
    shown = pid if pid is not None else "unknown pid"
    console.print(f"[green]✓[/] Stop requested for watcher on pid {shown}")
