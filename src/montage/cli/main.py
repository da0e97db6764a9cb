"""montage CLI entry point."""

from __future__ import annotations

import importlib.metadata
from pathlib import Path
from typing import Annotated

import typer

from montage.cli.export import export_cmd
from montage.cli.history import history_cmd
from montage.cli.init import init_cmd
from montage.cli.repos import add_cmd, disable_cmd, enable_cmd, list_cmd
from montage.cli.status import status_cmd
from montage.cli.watch import stop_cmd, watch_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("montage")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"montage {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="montage",
    help=(
        "montage: line-level history for the text files in your repositories.\n\n"
        "  montage watch    Record every edit in the background.\n"
        "  montage history  Browse and restore past versions of a file."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    home: Annotated[
        Path | None,
        typer.Option(
            "--home",
            envvar="MONTAGE_HOME",
            help="Data directory (default ~/.montage).",
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """montage: line-level history for the text files in your repositories."""
    ctx.obj = {"home": home}


app.command("init")(init_cmd)
app.command("add")(add_cmd)
app.command("enable")(enable_cmd)
app.command("disable")(disable_cmd)
app.command("list")(list_cmd)
app.command("watch")(watch_cmd)
app.command("stop")(stop_cmd)
app.command("status")(status_cmd)
app.command("history")(history_cmd)
app.command("export")(export_cmd)


if __name__ == "__main__":
    app()
