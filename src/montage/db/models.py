"""Domain models for the montage change log."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from montage.history.elements import ChangeElement, decode_elements


class RepoStatus(IntEnum):
    """Lifecycle of a watched repository."""

    INACTIVE = 0
    STARTING = 1
    ACTIVE = 2


@dataclass
class Repository:
    id: int
    absolute_path: str
    status: RepoStatus = RepoStatus.STARTING
    current_event: int | None = None
    created_at: str | None = None


@dataclass
class Document:
    id: int
    repository_id: int
    relative_path: str
    canonical_path: str
    content: str | None = None  # last recorded version (baseline)
    created_at: str | None = None


@dataclass
class Event:
    id: int
    repository_id: int
    parent_event: int | None = None
    created_at: str | None = None


@dataclass
class Change:
    """One stored diff record.

    The element sequence is kept in its stored JSON form and decoded on
    access, so a single corrupt row surfaces as CorruptHistoryError for
    that record only.
    """

    id: int
    document_id: int
    event_id: int
    change_elements: str
    created_at: str | None = None

    @property
    def elements(self) -> list[ChangeElement]:
        return decode_elements(self.change_elements, change_id=self.id)
