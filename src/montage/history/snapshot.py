"""Rebuild document versions from a single stored change.

Every change holds the full diff between two consecutive observed
versions, so both sides are recoverable from that one record:

    SAME + ADD     -> the document right after the change
    SAME + REMOVE  -> the document right before it

Functions taking a ``Change`` decode its stored elements and raise
CorruptHistoryError when they are malformed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from montage.history.elements import ChangeElement, ChangeTag

if TYPE_CHECKING:
    from montage.db.models import Change


@dataclass(frozen=True)
class Snippet:
    """A non-SAME run, addressable by its position among the changed runs."""

    index: int
    tag: ChangeTag
    content: str


def current_text(elements: list[ChangeElement]) -> str:
    return "".join(e.content for e in elements if e.tag is not ChangeTag.REMOVE)


def previous_text(elements: list[ChangeElement]) -> str:
    return "".join(e.content for e in elements if e.tag is not ChangeTag.ADD)


def reconstruct_current(change: Change) -> str:
    """Full document text as of *change*."""
    return current_text(change.elements)


def reconstruct_previous(change: Change) -> str:
    """Full document text immediately before *change*."""
    return previous_text(change.elements)


def extract_snippets(change: Change) -> list[Snippet]:
    """Enumerate the ADD / REMOVE runs of *change* with zero-based indexes."""
    changed = (e for e in change.elements if e.tag is not ChangeTag.SAME)
    return [Snippet(index=i, tag=e.tag, content=e.content) for i, e in enumerate(changed)]


def render_as_unified(change: Change) -> list[tuple[ChangeTag, str]]:
    """The raw tagged sequence of *change*, for display."""
    return [(e.tag, e.content) for e in change.elements]
