"""montage rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from montage.cli.errors import err_not_initialized
    console.print(err_not_initialized(home))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_not_initialized(home: str) -> str:
    """No database in the data directory."""
    return (
        f"[red]Error:[/] montage is not initialized (no database in '{home}').\n"
        "  Run:  montage init"
    )


def err_not_a_directory(path: str) -> str:
    """Repository path does not exist or is not a directory."""
    return (
        f"[red]Error:[/] Not a directory: '{path}'\n"
        "  Pass the root folder of the repository to watch."
    )


def err_repo_not_registered(path: str) -> str:
    """Path is not a watched repository."""
    return (
        f"[red]Error:[/] '{path}' is not a watched repository.\n"
        f"  Run:  montage add {path}"
    )


def err_already_running(pid: int | None) -> str:
    """A watcher already holds the liveness marker."""
    shown = pid if pid is not None else "unknown pid"
    return (
        f"[red]Error:[/] montage is already running (pid {shown}).\n"
        "  Run:  montage stop   to stop it first."
    )


def err_storage(detail: str) -> str:
    """The change log could not be read or written."""
    return (
        f"[red]Error:[/] Change log failure: {detail}\n"
        "  The watcher stopped so no history is lost silently.\n"
        "  Check disk space and permissions, then run:  montage watch"
    )


def err_config(detail: str) -> str:
    """Invalid configuration file or environment override."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix the value in config.yaml (or the MONTAGE_* variable) and retry."
    )


def err_document_not_tracked(path: str) -> str:
    """File has no document row yet."""
    return (
        f"[yellow]Not tracked:[/] '{path}' has no recorded history.\n"
        "  Make sure its repository is added and the watcher is running:\n"
        "    montage status"
    )


def err_version_out_of_range(version: int, available: int) -> str:
    """Requested version index does not exist."""
    return (
        f"[red]Error:[/] Version {version} does not exist ({available} recorded).\n"
        "  Run:  montage history FILE   to list versions (0 = most recent)."
    )


def err_snippet_out_of_range(snippet: int, available: int) -> str:
    """Requested snippet index does not exist."""
    return (
        f"[red]Error:[/] Snippet {snippet} does not exist ({available} in this version).\n"
        "  Run:  montage history FILE --version N --snippets   to list them."
    )


def err_corrupt_record(detail: str) -> str:
    """A stored change could not be decoded."""
    return f"[red]Corrupt history:[/] {detail}"
