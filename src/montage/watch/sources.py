"""Where a scheduling tick gets its candidate files from.

Both sources feed the same compare → diff → append pipeline in
WatchScheduler; they differ only in how candidates are found:

  PollingSource     walks every repository each tick (authoritative: files
                    missing from the walk are no longer tracked)
  EventQueueSource  drains paths pushed by an OS file-change notifier
                    (partial: only the reported paths are examined), with
                    a periodic full walk

montage.watch.notifier feeds an EventQueueSource from watchfiles.
"""

from __future__ import annotations

import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from montage.db.models import Repository
from montage.watch.walker import WalkOptions, is_watched, walk_repository


@dataclass
class TickBatch:
    """Candidate files for one tick.

    Attributes:
        paths: Repository id → files to examine, in processing order.
        removed: Files reported gone; dropped from the baseline cache.
        complete: True when *paths* lists every watched file, so anything
            not listed can be forgotten.
    """

    paths: dict[int, list[Path]] = field(default_factory=dict)
    removed: set[Path] = field(default_factory=set)
    complete: bool = True


class ChangeSource(ABC):
    """Produces the candidate files of a tick."""

    def __init__(self, options: WalkOptions | None = None) -> None:
        self.options = options or WalkOptions()

    @abstractmethod
    def collect(self, repositories: list[Repository]) -> TickBatch:
        """Return the files to examine for *repositories* this tick."""


class PollingSource(ChangeSource):
    """Full enumeration of every repository root."""

    def collect(self, repositories: list[Repository]) -> TickBatch:
        return _full_walk(repositories, self.options)


class EventQueueSource(ChangeSource):
    """Paths reported by a notifier between ticks.

    The first collect, and then every *rescan_every* collects, is a full
    walk: it baselines everything up front and picks up files whose events
    were missed (or repositories added after the notifier started).
    ``notify()`` is safe to call from the notifier's own thread; the queue
    is drained by the scheduler loop only.
    """

    def __init__(self, options: WalkOptions | None = None, rescan_every: int = 0) -> None:
        super().__init__(options)
        self.rescan_every = rescan_every
        self._collects = 0
        self._pending: queue.SimpleQueue[Path] = queue.SimpleQueue()

    def notify(self, path: Path | str) -> None:
        self._pending.put(Path(path).absolute())

    def collect(self, repositories: list[Repository]) -> TickBatch:
        reported = self._drain()
        rescan = self._collects == 0 or (
            self.rescan_every > 0 and self._collects % self.rescan_every == 0
        )
        self._collects += 1
        if rescan:
            return _full_walk(repositories, self.options)

        batch = TickBatch(complete=False)
        for path in reported:
            if not path.exists():
                batch.removed.add(path)
                continue
            for repo in repositories:
                root = Path(repo.absolute_path)
                if is_watched(root, path, self.options):
                    batch.paths.setdefault(repo.id, []).append(path)
        return batch

    def _drain(self) -> list[Path]:
        reported: list[Path] = []
        seen: set[Path] = set()
        while True:
            try:
                path = self._pending.get_nowait()
            except queue.Empty:
                return reported
            if path not in seen:
                seen.add(path)
                reported.append(path)


def _full_walk(repositories: list[Repository], options: WalkOptions) -> TickBatch:
    batch = TickBatch(complete=True)
    for repo in repositories:
        batch.paths[repo.id] = list(walk_repository(Path(repo.absolute_path), options))
    return batch
