"""OS file-change notifications feeding an EventQueueSource.

watchfiles runs on a daemon thread and pushes every reported path into the
source's queue; the scheduler loop drains it at the next tick. Filtering
(hidden files, ignore rules, size) stays with the source, so the notifier
forwards everything watchfiles reports.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import watchfiles

from montage.watch.sources import EventQueueSource

logger = logging.getLogger(__name__)


class FileNotifier:
    """Watches repository roots and forwards changed paths to *source*."""

    def __init__(
        self,
        source: EventQueueSource,
        roots: list[Path],
        debounce_ms: int = 200,
    ) -> None:
        self.source = source
        self.roots = roots
        self.debounce_ms = debounce_ms
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if not self.roots:
            logger.info("No repositories to watch for file events; relying on rescans")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="montage-notifier", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        try:
            for changes in watchfiles.watch(
                *self.roots,
                watch_filter=None,
                debounce=self.debounce_ms,
                stop_event=self._stop,
                raise_interrupt=False,
            ):
                for _change, path in changes:
                    self.source.notify(path)
        except OSError as exc:
            logger.error("File notifier stopped: %s (full rescans continue)", exc)
