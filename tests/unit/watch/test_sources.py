"""Tests for tick change sources."""

from __future__ import annotations

from montage.db.models import Repository
from montage.watch.sources import EventQueueSource, PollingSource


def _write(path, text="x\n"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_polling_source_lists_every_repository(tmp_path):
    one = tmp_path / "one"
    two = tmp_path / "two"
    a = _write(one / "a.txt")
    b = _write(two / "b.txt")
    repos = [Repository(1, str(one)), Repository(2, str(two))]

    batch = PollingSource().collect(repos)

    assert batch.complete is True
    assert batch.paths == {1: [a], 2: [b]}
    assert batch.removed == set()


def test_polling_source_empty_repository(tmp_path):
    (tmp_path / "empty").mkdir()
    batch = PollingSource().collect([Repository(1, str(tmp_path / "empty"))])
    assert batch.paths == {1: []}


def _primed(repos, **kwargs) -> EventQueueSource:
    """An EventQueueSource past its initial full walk."""
    source = EventQueueSource(**kwargs)
    source.collect(repos)
    return source


def test_event_queue_source_first_collect_is_full_walk(tmp_path):
    a = _write(tmp_path / "a.txt")
    source = EventQueueSource()

    batch = source.collect([Repository(1, str(tmp_path))])

    assert batch.complete is True
    assert batch.paths == {1: [a]}


def test_event_queue_source_deduplicates(tmp_path):
    a = _write(tmp_path / "a.txt")
    repos = [Repository(1, str(tmp_path))]
    source = _primed(repos)
    source.notify(a)
    source.notify(str(a))

    batch = source.collect(repos)

    assert batch.complete is False
    assert batch.paths == {1: [a]}


def test_event_queue_source_reports_removed_paths(tmp_path):
    repos = [Repository(1, str(tmp_path))]
    source = _primed(repos)
    source.notify(tmp_path / "gone.txt")
    batch = source.collect(repos)
    assert batch.removed == {tmp_path / "gone.txt"}
    assert batch.paths == {}


def test_event_queue_source_filters_unwatched(tmp_path):
    root = tmp_path / "repo"
    _write(root / ".hidden")
    outside = _write(tmp_path / "outside.txt")
    repos = [Repository(1, str(root))]
    source = _primed(repos)
    source.notify(root / ".hidden")
    source.notify(outside)
    assert source.collect(repos).paths == {}


def test_event_queue_source_assigns_to_overlapping_roots(tmp_path):
    inner = _write(tmp_path / "sub" / "x.txt")
    repos = [Repository(1, str(tmp_path)), Repository(2, str(tmp_path / "sub"))]
    source = _primed(repos)
    source.notify(inner)
    batch = source.collect(repos)
    assert batch.paths == {1: [inner], 2: [inner]}


def test_event_queue_source_drains_queue(tmp_path):
    a = _write(tmp_path / "a.txt")
    repos = [Repository(1, str(tmp_path))]
    source = _primed(repos)
    source.notify(a)
    source.collect(repos)
    assert source.collect(repos).paths == {}


def test_event_queue_source_periodic_rescan(tmp_path):
    _write(tmp_path / "a.txt")
    repos = [Repository(1, str(tmp_path))]
    source = EventQueueSource(rescan_every=2)

    kinds = [source.collect(repos).complete for _ in range(5)]

    assert kinds == [True, False, True, False, True]


def test_event_queue_source_rescan_finds_unreported_files(tmp_path):
    repos = [Repository(1, str(tmp_path))]
    source = _primed(repos, rescan_every=2)
    missed = _write(tmp_path / "missed.txt")

    assert source.collect(repos).paths == {}
    rescan = source.collect(repos)
    assert rescan.complete is True
    assert rescan.paths == {1: [missed]}


def test_event_queue_source_rescan_disabled(tmp_path):
    _write(tmp_path / "a.txt")
    repos = [Repository(1, str(tmp_path))]
    source = _primed(repos, rescan_every=0)
    assert all(not source.collect(repos).complete for _ in range(3))
