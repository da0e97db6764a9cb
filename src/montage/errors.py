"""Exception hierarchy shared by the change-capture core.

Every error raised by montage derives from *MontageError* so the CLI can
render one actionable message per failure. Which errors are fatal is
decided by the caller:

  InvalidInputError    bad path / unknown repository, reported, never retried
  FileAccessError      one file could not be read this tick, skipped
  StorageError         the change log could not be written, daemon stops
  CorruptHistoryError  a stored change cannot be decoded, that record only
  AlreadyRunningError  a watcher already holds the liveness marker
"""

from __future__ import annotations


class MontageError(Exception):
    """Base class for all montage errors."""


class InvalidInputError(MontageError):
    """Raised for malformed paths or references to unregistered repositories."""


class FileAccessError(MontageError):
    """Raised when a watched file cannot be stat'ed, read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read '{path}': {reason}")
        self.path = path
        self.reason = reason


class StorageError(MontageError):
    """Raised when a change log transaction or connection fails."""


class CorruptHistoryError(MontageError):
    """Raised when a stored element sequence is malformed."""

    def __init__(self, message: str, change_id: int | None = None) -> None:
        if change_id is not None:
            message = f"Change {change_id}: {message}"
        super().__init__(message)
        self.change_id = change_id


class AlreadyRunningError(MontageError):
    """Raised by the singleton controller when a watcher is already running."""

    def __init__(self, pid: int | None) -> None:
        shown = pid if pid is not None else "unknown"
        super().__init__(f"montage is already running on pid {shown}")
        self.pid = pid
