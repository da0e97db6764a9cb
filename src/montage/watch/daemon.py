"""Single-instance control of the watch loop via a pid marker file.

The marker (``<MONTAGE_HOME>/watcher.pid``, a decimal pid as UTF-8 text) is
the only source of truth for "is the watcher running":

  start   refuses while a marker exists, otherwise writes our pid and loops
  loop    re-checks the marker before every tick and exits once it is gone
  stop    deletes the marker; the watcher notices within one interval

Checking for the marker and writing it are two separate steps, so two
``start`` calls racing each other can both succeed. This is a known,
accepted limitation; an exclusive lock would change the stop protocol.
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from collections.abc import Callable
from pathlib import Path
from types import FrameType

from montage.errors import AlreadyRunningError, StorageError
from montage.watch.scheduler import TickReport, WatchScheduler

logger = logging.getLogger(__name__)

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SingletonController:
    """Owns the liveness marker and drives a WatchScheduler until stopped."""

    def __init__(self, marker_path: Path, interval: float = 5.0) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.marker_path = marker_path
        self.interval = interval
        self._wake = threading.Event()
        self._previous_handlers: dict[int, object] = {}

    # ------------------------------------------------------------------
    # Marker
    # ------------------------------------------------------------------

    def is_running(self) -> bool:
        return self.marker_path.exists()

    def read_pid(self) -> int | None:
        """Return the pid in the marker, or None if absent or unreadable."""
        try:
            text = self.marker_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read marker %s: %s", self.marker_path, exc)
            return None
        try:
            return int(text)
        except ValueError:
            logger.warning("Marker %s does not hold a pid: %r", self.marker_path, text)
            return None

    def acquire(self) -> int:
        """Write our pid as the marker.

        Raises:
            AlreadyRunningError: If a marker already exists (left untouched).
        """
        if self.is_running():
            raise AlreadyRunningError(self.read_pid())
        pid = os.getpid()
        self.marker_path.parent.mkdir(parents=True, exist_ok=True)
        self.marker_path.write_text(str(pid), encoding="utf-8")
        return pid

    def release(self) -> None:
        """Delete the marker if it still holds our pid."""
        if self.read_pid() == os.getpid():
            self.marker_path.unlink(missing_ok=True)

    def stop(self) -> bool:
        """Delete the marker. Returns True if a marker was removed.

        Does not signal the watcher process; it exits cooperatively at its
        next marker check.
        """
        existed = self.is_running()
        self.marker_path.unlink(missing_ok=True)
        self._wake.set()
        return existed

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def install_signal_handlers(self) -> None:
        """Remove the marker on SIGINT / SIGTERM so the loop winds down."""
        for signum in _HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s, cleaning up", signal.Signals(signum).name)
        self.marker_path.unlink(missing_ok=True)
        self._wake.set()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def start(
        self,
        bootstrap: Callable[[], WatchScheduler],
        on_tick: Callable[[TickReport], None] | None = None,
    ) -> int:
        """Acquire the marker, bootstrap the scheduler and loop until stopped.

        Args:
            bootstrap: Opens storage and builds the scheduler. Runs after the
                marker is written; if it fails the marker is removed again.
            on_tick: Optional callback receiving each tick's report.

        Returns:
            The number of ticks run.

        Raises:
            AlreadyRunningError: If another watcher holds the marker.
            StorageError: If the change log fails; the marker is removed.
        """
        self.acquire()
        try:
            scheduler = bootstrap()
            self.install_signal_handlers()
            try:
                return self.run(scheduler, on_tick)
            finally:
                self.restore_signal_handlers()
        finally:
            self.release()

    def run(
        self,
        scheduler: WatchScheduler,
        on_tick: Callable[[TickReport], None] | None = None,
    ) -> int:
        """Tick until the marker disappears. Returns the number of ticks run."""
        ticks = 0
        self._wake.clear()
        while self.is_running():
            try:
                report = scheduler.tick()
            except StorageError:
                logger.error("Change log write failed; stopping the watcher")
                raise
            ticks += 1
            if on_tick is not None:
                on_tick(report)
            self._wake.wait(self.interval)
            self._wake.clear()
        logger.info("Marker removed, watcher exiting after %d ticks", ticks)
        return ticks
