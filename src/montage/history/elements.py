"""Tagged line runs and their JSON storage format.

A change is stored as a JSON array of objects::

    [{"type": "same", "content": "a\\n"}, {"type": "remove", "content": "b\\n"}, ...]

*content* is the exact text of the run, line separators included.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

from montage.errors import CorruptHistoryError


class ChangeTag(str, Enum):
    """Closed set of run tags."""

    SAME = "same"
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class ChangeElement:
    """A contiguous run of lines sharing one tag."""

    tag: ChangeTag
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.tag.value, "content": self.content}


def encode_elements(elements: list[ChangeElement]) -> str:
    """Serialise *elements* to the stored JSON form."""
    return json.dumps([e.to_dict() for e in elements], ensure_ascii=False)


def decode_elements(raw: str, change_id: int | None = None) -> list[ChangeElement]:
    """Parse a stored element sequence.

    Raises:
        CorruptHistoryError: If *raw* is not a JSON array of well-formed
            ``{"type", "content"}`` objects.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CorruptHistoryError(f"invalid JSON ({exc})", change_id) from exc

    if not isinstance(data, list):
        raise CorruptHistoryError("element sequence is not a list", change_id)

    elements: list[ChangeElement] = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise CorruptHistoryError(f"element {position} is not an object", change_id)
        content = item.get("content")
        if not isinstance(content, str):
            raise CorruptHistoryError(f"element {position} has no text content", change_id)
        try:
            tag = ChangeTag(item.get("type"))
        except ValueError:
            raise CorruptHistoryError(
                f"element {position} has unknown type {item.get('type')!r}", change_id
            ) from None
        elements.append(ChangeElement(tag=tag, content=content))
    return elements
