"""The watch scheduler: one sequential pass over every repository per tick.

Per document the scheduler moves Unseen → Baselined → {Unchanged, Diffed}:

  Unseen     no cache entry; the baseline comes from the change log, or the
             current disk content becomes the baseline (no change written)
  Unchanged  modification time equals the cached one; the file is not read
  Diffed     content differs from the baseline; one change is appended and
             the cached baseline advances

The in-memory cache is advanced only after the append has committed, so a
StorageError leaves memory and the change log in agreement. Storage errors
are fatal to the tick; per-file read errors skip that file only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from montage.db.models import Repository, RepoStatus
from montage.db.store import ChangeLogStore
from montage.errors import FileAccessError
from montage.history.diff import diff
from montage.watch.sources import ChangeSource, PollingSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Baseline:
    """Cached state of one tracked file.

    Attributes:
        repository_id: Repository whose pass produced this entry; an entry
            left by another (overlapping) repository is not reused.
        document_id: Row id in the change log.
        content: Last observed text.
        mtime_ns: Modification time *content* was read at.
        failed_mtime_ns: Modification time of the last failed read; the file
            is not retried (or re-reported) until it changes again.
    """

    repository_id: int
    document_id: int | None
    content: str | None
    mtime_ns: int | None
    failed_mtime_ns: int | None = None


@dataclass
class TickReport:
    """What one scheduling pass did."""

    examined: int = 0
    baselined: int = 0
    changes: int = 0
    events: int = 0
    skipped: int = 0


def read_text(path: Path) -> str:
    """Read *path* as UTF-8 keeping its line separators untouched.

    Raises:
        FileAccessError: On any OS or decoding failure.
    """
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()
    except UnicodeDecodeError:
        raise FileAccessError(str(path), "not valid UTF-8 text") from None
    except OSError as exc:
        raise FileAccessError(str(path), exc.strerror or str(exc)) from exc


class WatchScheduler:
    """Diffs changed files and appends the results to the change log.

    The baseline cache is owned by this object and touched only from
    ``tick()``; run one scheduler per process.
    """

    def __init__(self, store: ChangeLogStore, source: ChangeSource | None = None) -> None:
        self.store = store
        self.source = source or PollingSource()
        self._cache: dict[str, Baseline] = {}

    @property
    def tracked(self) -> dict[str, Baseline]:
        """Read-only view of the baseline cache, keyed by canonical path."""
        return dict(self._cache)

    def tick(self) -> TickReport:
        """Run one scheduling pass over every non-inactive repository.

        Raises:
            StorageError: If the change log cannot be written. The cache is
                left as it was before the failing file.
        """
        report = TickReport()
        repositories = [
            r for r in self.store.list_repositories() if r.status is not RepoStatus.INACTIVE
        ]
        batch = self.source.collect(repositories)

        if batch.complete:
            next_cache: dict[str, Baseline] = {}
        else:
            gone = {str(p.resolve()) for p in batch.removed}
            next_cache = {k: v for k, v in self._cache.items() if k not in gone}

        visited: set[str] = set()
        for repo in repositories:
            ensure_event = self._event_factory(repo, report)
            for path in batch.paths.get(repo.id, []):
                try:
                    canonical = str(path.resolve())
                except OSError as exc:
                    logger.warning("Cannot resolve %s: %s", path, exc)
                    report.skipped += 1
                    continue
                if canonical in visited:
                    continue
                visited.add(canonical)
                report.examined += 1
                next_cache[canonical] = self._process(
                    repo, path, canonical, ensure_event, report
                )

            if repo.status is RepoStatus.STARTING:
                self.store.set_repository_status(repo.id, RepoStatus.ACTIVE)
                logger.info("Watching %s", repo.absolute_path)

        self._cache = next_cache
        logger.debug(
            "Tick: %d examined, %d baselined, %d changes, %d events, %d skipped",
            report.examined,
            report.baselined,
            report.changes,
            report.events,
            report.skipped,
        )
        return report

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def _process(
        self,
        repo: Repository,
        path: Path,
        canonical: str,
        ensure_event: Callable[[], int],
        report: TickReport,
    ) -> Baseline:
        cached = self._cache.get(canonical)
        if cached is not None and cached.repository_id != repo.id:
            cached = None
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as exc:
            logger.warning("Cannot stat %s: %s", path, exc)
            report.skipped += 1
            return cached or Baseline(repo.id, None, None, None)

        if cached is not None and mtime_ns in (cached.mtime_ns, cached.failed_mtime_ns):
            return cached

        try:
            content = read_text(path)
        except FileAccessError as exc:
            logger.warning("Skipping file: %s", exc)
            report.skipped += 1
            if cached is None:
                return Baseline(repo.id, None, None, None, failed_mtime_ns=mtime_ns)
            return replace(cached, failed_mtime_ns=mtime_ns)

        if cached is None or cached.document_id is None or cached.content is None:
            baseline = self.store.get_document_baseline(repo.id, canonical)
            document_id = self.store.upsert_document(
                repo.id, _relative(path, repo), canonical, content
            )
            if baseline is None:
                report.baselined += 1
                logger.debug("Baselined %s", canonical)
                return Baseline(repo.id, document_id, content, mtime_ns)
        else:
            baseline = cached.content
            document_id = cached.document_id

        result = diff(baseline, content)
        if result.distance == 0:
            return Baseline(repo.id, document_id, baseline, mtime_ns)

        event_id = ensure_event()
        self.store.append_change(document_id, event_id, result.elements)
        report.changes += 1
        logger.info("Recorded change to %s (%d runs)", canonical, result.distance)
        return Baseline(repo.id, document_id, content, mtime_ns)

    def _event_factory(self, repo: Repository, report: TickReport) -> Callable[[], int]:
        """Return a callable creating this tick's event for *repo* on first use."""
        state: dict[str, int | None] = {"event": None}

        def ensure_event() -> int:
            if state["event"] is None:
                state["event"] = self.store.start_event(repo.id, repo.current_event)
                repo.current_event = state["event"]
                report.events += 1
            return state["event"]

        return ensure_event


def _relative(path: Path, repo: Repository) -> str:
    try:
        return path.relative_to(repo.absolute_path).as_posix()
    except ValueError:
        return path.as_posix()
