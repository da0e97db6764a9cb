"""montage history: browse the recorded versions of one file.

Versions are numbered from 0 (most recent change) upwards. Every view is
derived from a single stored change:

  montage history FILE                      list versions
  montage history FILE -v 2                 print the file as of version 2
  montage history FILE -v 2 --previous      print it as it was just before
  montage history FILE -v 2 --diff          tagged runs of version 2
  montage history FILE -v 2 --snippets      list the added / removed runs
  montage history FILE -v 2 --snippet 1     print one run
  montage history FILE --restore 2          overwrite FILE with version 2

A corrupt record is reported for that version only; the others stay
browsable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table
from rich.text import Text

from montage.cli.common import console, get_config, open_existing_db
from montage.cli.errors import (
    err_corrupt_record,
    err_document_not_tracked,
    err_snippet_out_of_range,
    err_version_out_of_range,
)
from montage.db.models import Change
from montage.db.store import ChangeLogStore
from montage.errors import CorruptHistoryError
from montage.history.elements import ChangeTag
from montage.history.snapshot import (
    extract_snippets,
    reconstruct_current,
    reconstruct_previous,
    render_as_unified,
)

_TAG_STYLE = {ChangeTag.ADD: ("+", "green"), ChangeTag.REMOVE: ("-", "red"), ChangeTag.SAME: (" ", "dim")}


def history_cmd(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Tracked file to inspect.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Number of recent versions to load."),
    ] = None,
    version: Annotated[
        int | None,
        typer.Option("--version", "-v", min=0, help="Version to show (0 = most recent)."),
    ] = None,
    previous: Annotated[
        bool,
        typer.Option("--previous", help="Show the content just before the version."),
    ] = False,
    diff: Annotated[
        bool,
        typer.Option("--diff", help="Show the version's tagged line runs."),
    ] = False,
    snippets: Annotated[
        bool,
        typer.Option("--snippets", help="List the version's added / removed runs."),
    ] = False,
    snippet: Annotated[
        int | None,
        typer.Option("--snippet", min=0, help="Print one added / removed run."),
    ] = None,
    restore: Annotated[
        int | None,
        typer.Option("--restore", min=0, help="Overwrite FILE with this version."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the --restore confirmation."),
    ] = False,
) -> None:
    """Browse the recorded versions of a file."""
    cfg = get_config(ctx)
    canonical = file.expanduser().resolve()

    conn = open_existing_db(cfg)
    try:
        store = ChangeLogStore(conn)
        doc = store.get_document_by_path(str(canonical))
        if doc is None:
            console.print(err_document_not_tracked(str(file)))
            raise typer.Exit(1)
        changes = store.latest_changes(doc.id, limit or cfg.history.limit)
    finally:
        conn.close()

    if not changes:
        console.print(f"[dim]No changes recorded for {doc.relative_path} yet.[/]")
        return

    if restore is not None:
        _restore(canonical, _pick(changes, restore), restore, yes)
        return

    if version is None:
        _show_versions(doc.relative_path, changes)
        return

    change = _pick(changes, version)
    try:
        if snippet is not None:
            found = extract_snippets(change)
            if snippet >= len(found):
                console.print(err_snippet_out_of_range(snippet, len(found)))
                raise typer.Exit(1)
            typer.echo(found[snippet].content, nl=False)
        elif snippets:
            _show_snippets(change)
        elif diff:
            _show_diff(change)
        elif previous:
            typer.echo(reconstruct_previous(change), nl=False)
        else:
            typer.echo(reconstruct_current(change), nl=False)
    except CorruptHistoryError as exc:
        console.print(err_corrupt_record(str(exc)))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def _pick(changes: list[Change], index: int) -> Change:
    if index >= len(changes):
        console.print(err_version_out_of_range(index, len(changes)))
        raise typer.Exit(1)
    return changes[index]


def _show_versions(relative_path: str, changes: list[Change]) -> None:
    table = Table(title=f"History of {relative_path}")
    table.add_column("Version", justify="right")
    table.add_column("Recorded (UTC)")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Removed", justify="right", style="red")
    table.add_column("Lines", justify="right")

    for index, change in enumerate(changes):
        try:
            found = extract_snippets(change)
            text = reconstruct_current(change)
        except CorruptHistoryError:
            table.add_row(str(index), change.created_at or "", "[red]corrupt[/]", "", "")
            continue
        added = sum(1 for s in found if s.tag is ChangeTag.ADD)
        removed = len(found) - added
        table.add_row(
            str(index),
            change.created_at or "",
            str(added),
            str(removed),
            str(len(text.splitlines())),
        )
    console.print(table)


def _show_snippets(change: Change) -> None:
    table = Table(show_header=True)
    table.add_column("Snippet", justify="right")
    table.add_column("Type")
    table.add_column("Lines", justify="right")
    table.add_column("First line")
    for s in extract_snippets(change):
        marker, style = _TAG_STYLE[s.tag]
        lines = s.content.splitlines()
        table.add_row(
            str(s.index),
            f"[{style}]{marker} {s.tag.value}[/]",
            str(len(lines)),
            Text(lines[0] if lines else ""),
        )
    console.print(table)


def _show_diff(change: Change) -> None:
    out = Text()
    for tag, content in render_as_unified(change):
        marker, style = _TAG_STYLE[tag]
        for line in content.splitlines(keepends=True):
            out.append(f"{marker} {line}", style=style)
        if content and not content.endswith(("\n", "\r")):
            out.append("\n")
    console.print(out, end="")


def _restore(target: Path, change: Change, index: int, yes: bool) -> None:
    try:
        text = reconstruct_current(change)
    except CorruptHistoryError as exc:
        console.print(err_corrupt_record(str(exc)))
        raise typer.Exit(1)

    if not yes and not typer.confirm(f"Overwrite {target} with version {index}?", default=False):
        console.print("[dim]Cancelled.[/]")
        raise typer.Exit(0)

    with open(target, "w", encoding="utf-8", newline="") as fh:
        fh.write(text)
    console.print(f"[green]✓[/] Restored {target} to version {index}")
