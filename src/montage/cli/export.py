"""montage export: dump a repository's recorded changes as JSON.

Produces the bulk payload an upload client sends; pass ``--since`` with the
``created_at`` of the last pushed change to export only newer history.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from montage.cli.common import console, get_config, open_existing_db, require_repository
from montage.cli.errors import err_corrupt_record
from montage.db.store import ChangeLogStore
from montage.errors import CorruptHistoryError
from montage.history.export import export_changes


def export_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Registered repository root.")],
    since: Annotated[
        str | None,
        typer.Option("--since", help="Only changes created after this timestamp (UTC)."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file instead of stdout."),
    ] = None,
) -> None:
    """Export recorded changes for an upload client."""
    cfg = get_config(ctx)
    conn = open_existing_db(cfg)
    try:
        store = ChangeLogStore(conn)
        repo = require_repository(store, path)
        try:
            payload = export_changes(store, repo.id, since)
        except CorruptHistoryError as exc:
            console.print(err_corrupt_record(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()

    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]✓[/] {len(payload['changes'])} changes written to {output}")
