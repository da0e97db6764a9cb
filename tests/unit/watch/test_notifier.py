"""Tests for the watchfiles-backed file notifier."""

from __future__ import annotations

import threading

import pytest
import watchfiles
from watchfiles import Change

from montage.db.models import Repository
from montage.watch.notifier import FileNotifier
from montage.watch.sources import EventQueueSource


@pytest.fixture
def fake_watch(monkeypatch: pytest.MonkeyPatch):
    """Replace watchfiles.watch with a generator that reports *events* once."""
    calls: dict = {"events": [], "delivered": threading.Event()}

    def watch(*paths, stop_event=None, **kwargs):
        calls["paths"] = paths
        calls["kwargs"] = kwargs
        yield {(Change.modified, str(p)) for p in calls["events"]}
        calls["delivered"].set()
        stop_event.wait(5)

    monkeypatch.setattr(watchfiles, "watch", watch)
    return calls


def _primed(root):
    source = EventQueueSource()
    repos = [Repository(1, str(root))]
    source.collect(repos)
    return source, repos


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------


def test_notifier_forwards_changed_paths(tmp_path, fake_watch):
    a = tmp_path / "a.txt"
    a.write_text("a\n", encoding="utf-8")
    fake_watch["events"] = [a]
    source, repos = _primed(tmp_path)

    notifier = FileNotifier(source, [tmp_path])
    notifier.start()
    assert fake_watch["delivered"].wait(5)
    notifier.stop()

    batch = source.collect(repos)
    assert batch.complete is False
    assert batch.paths == {1: [a]}


def test_notifier_watches_every_root_without_filter(tmp_path, fake_watch):
    one, two = tmp_path / "one", tmp_path / "two"
    one.mkdir()
    two.mkdir()
    source, _ = _primed(tmp_path)

    notifier = FileNotifier(source, [one, two])
    notifier.start()
    assert fake_watch["delivered"].wait(5)
    notifier.stop()

    assert fake_watch["paths"] == (one, two)
    assert fake_watch["kwargs"]["watch_filter"] is None


def test_notifier_stop_ends_thread(tmp_path, fake_watch):
    source, _ = _primed(tmp_path)
    notifier = FileNotifier(source, [tmp_path])
    notifier.start()
    assert fake_watch["delivered"].wait(5)
    assert notifier.running

    notifier.stop()

    assert not notifier.running


def test_notifier_without_roots_does_not_start(tmp_path, fake_watch):
    source, _ = _primed(tmp_path)
    notifier = FileNotifier(source, [])
    notifier.start()
    assert not notifier.running
    assert "paths" not in fake_watch
    notifier.stop()


def test_notifier_logs_when_watch_fails(tmp_path, monkeypatch, caplog):
    def watch(*paths, **kwargs):
        raise FileNotFoundError(f"No path was found: {paths[0]}")
        yield  # pragma: no cover

    monkeypatch.setattr(watchfiles, "watch", watch)
    source, _ = _primed(tmp_path)
    notifier = FileNotifier(source, [tmp_path / "missing"])

    with caplog.at_level("ERROR", logger="montage.watch.notifier"):
        notifier.start()
        notifier._thread.join(5)

    assert not notifier.running
    assert "File notifier stopped" in caplog.text
    notifier.stop()
