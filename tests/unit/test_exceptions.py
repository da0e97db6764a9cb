"""Tests for the montage exception hierarchy."""

from __future__ import annotations

import pytest

from montage.errors import (
    AlreadyRunningError,
    CorruptHistoryError,
    FileAccessError,
    InvalidInputError,
    MontageError,
    StorageError,
)


@pytest.mark.parametrize(
    "exc",
    [
        InvalidInputError("bad"),
        FileAccessError("/a.txt", "permission denied"),
        StorageError("disk full"),
        CorruptHistoryError("bad json"),
        AlreadyRunningError(1),
    ],
)
def test_all_errors_share_base(exc: Exception) -> None:
    assert isinstance(exc, MontageError)


def test_file_access_error_fields() -> None:
    exc = FileAccessError("/a.txt", "permission denied")
    assert exc.path == "/a.txt"
    assert exc.reason == "permission denied"
    assert "/a.txt" in str(exc)


def test_corrupt_history_without_id() -> None:
    exc = CorruptHistoryError("bad json")
    assert exc.change_id is None
    assert str(exc) == "bad json"


def test_already_running_message() -> None:
    assert str(AlreadyRunningError(99)) == "montage is already running on pid 99"
    assert "unknown" in str(AlreadyRunningError(None))
