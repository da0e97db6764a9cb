"""Tests for montage watch / stop / status."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
import watchfiles
from typer.testing import CliRunner

from montage.cli.main import app
from montage.db.connection import Database
from montage.db.models import RepoStatus
from montage.db.store import ChangeLogStore
from montage.errors import StorageError
from montage.watch.scheduler import WatchScheduler

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_logging():
    """watch installs a rich handler bound to the runner's stderr; undo it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    assert runner.invoke(app, ["--home", str(path), "init"]).exit_code == 0
    return path


@pytest.fixture
def repo(tmp_path: Path, home: Path) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    (path / "a.txt").write_text("hello\n", encoding="utf-8")
    assert runner.invoke(app, ["--home", str(home), "add", str(path)]).exit_code == 0
    return path.resolve()


def _invoke(home: Path, *args: str):
    return runner.invoke(app, ["--home", str(home), *args])


@pytest.fixture
def stop_after_first_tick(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the watcher remove its own marker after one tick."""
    original = WatchScheduler.tick

    def tick_once(self):
        report = original(self)
        (home / "watcher.pid").unlink(missing_ok=True)
        return report

    monkeypatch.setattr(WatchScheduler, "tick", tick_once)


# ---------------------------------------------------------------------------
# watch
# ---------------------------------------------------------------------------


def test_watch_runs_until_marker_removed(home: Path, repo: Path, stop_after_first_tick) -> None:
    result = _invoke(home, "watch", "--interval", "0.05")

    assert result.exit_code == 0, result.output
    assert "Watcher stopped after 1 ticks" in result.output
    assert not (home / "watcher.pid").exists()
    with Database(home / "database.db") as conn:
        store = ChangeLogStore(conn)
        assert store.get_repository_by_path(str(repo)).status is RepoStatus.ACTIVE
        assert store.get_document_by_path(str(repo / "a.txt")).content == "hello\n"


def test_watch_without_repositories_hints(home: Path, stop_after_first_tick) -> None:
    result = _invoke(home, "watch", "--interval", "0.05")
    assert result.exit_code == 0
    assert "No repositories registered yet" in result.output


def test_watch_refuses_when_running(home: Path) -> None:
    (home / "watcher.pid").write_text("4242", encoding="utf-8")
    result = _invoke(home, "watch")
    assert result.exit_code == 1
    assert "already running" in result.output
    assert (home / "watcher.pid").read_text(encoding="utf-8") == "4242"


def test_watch_storage_failure_exits_1(home: Path, repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(self):
        raise StorageError("disk full")

    monkeypatch.setattr(WatchScheduler, "tick", broken)
    result = _invoke(home, "watch", "--interval", "0.05")

    assert result.exit_code == 1
    assert "Change log failure" in result.output
    assert not (home / "watcher.pid").exists()


def test_watch_database_read_failure_exits_1(home: Path, repo: Path) -> None:
    with Database(home / "database.db") as conn:
        conn.execute("DROP TABLE changes")
        conn.execute("DROP TABLE documents")
    result = _invoke(home, "watch", "--interval", "0.05")

    assert result.exit_code == 1
    assert "Change log failure" in result.output
    assert not (home / "watcher.pid").exists()


@pytest.fixture
def fake_watchfiles(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Record the roots handed to watchfiles and block until stopped."""
    seen: dict = {}

    def watch(*paths, stop_event=None, **kwargs):
        seen["paths"] = paths
        stop_event.wait(5)
        seen["stopped"] = stop_event.is_set()
        return
        yield  # pragma: no cover

    monkeypatch.setattr(watchfiles, "watch", watch)
    return seen


def test_watch_notify_uses_file_events(
    home: Path, repo: Path, stop_after_first_tick, fake_watchfiles: dict
) -> None:
    result = _invoke(home, "watch", "--interval", "0.05", "--notify")

    assert result.exit_code == 0, result.output
    assert "file events" in result.output
    assert fake_watchfiles["paths"] == (repo,)
    assert fake_watchfiles["stopped"] is True
    with Database(home / "database.db") as conn:
        store = ChangeLogStore(conn)
        assert store.get_document_by_path(str(repo / "a.txt")).content == "hello\n"


def test_watch_notifier_from_config(
    home: Path, repo: Path, stop_after_first_tick, fake_watchfiles: dict
) -> None:
    (home / "config.yaml").write_text("watch:\n  notifier: true\n  rescan_every: 5\n", encoding="utf-8")
    result = _invoke(home, "watch", "--interval", "0.05")

    assert result.exit_code == 0, result.output
    assert "full rescan every 5 ticks" in result.output
    assert fake_watchfiles["paths"] == (repo,)


def test_watch_poll_overrides_config(
    home: Path, repo: Path, stop_after_first_tick, fake_watchfiles: dict
) -> None:
    (home / "config.yaml").write_text("watch:\n  notifier: true\n", encoding="utf-8")
    result = _invoke(home, "watch", "--interval", "0.05", "--poll")

    assert result.exit_code == 0, result.output
    assert "polling" in result.output
    assert "paths" not in fake_watchfiles


def test_watch_rejects_tiny_interval(home: Path) -> None:
    result = _invoke(home, "watch", "--interval", "0")
    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# stop
# ---------------------------------------------------------------------------


def test_stop_when_not_running(home: Path) -> None:
    result = _invoke(home, "stop")
    assert result.exit_code == 0
    assert "not running" in result.output


def test_stop_removes_marker(home: Path) -> None:
    marker = home / "watcher.pid"
    marker.write_text("4242", encoding="utf-8")
    result = _invoke(home, "stop")
    assert result.exit_code == 0
    assert "pid 4242" in result.output
    assert not marker.exists()


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


def test_status_not_running(home: Path) -> None:
    result = _invoke(home, "status")
    assert result.exit_code == 0
    assert "not running" in result.output
    assert "No repositories yet" in result.output


def test_status_running_with_repository(home: Path, repo: Path) -> None:
    (home / "watcher.pid").write_text(str(os.getpid()), encoding="utf-8")
    result = _invoke(home, "status")
    assert result.exit_code == 0
    assert f"pid {os.getpid()}" in result.output
    assert "starting" in result.output


def test_status_before_init(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--home", str(tmp_path / "home"), "status"])
    assert result.exit_code == 0
    assert "montage init" in result.output
