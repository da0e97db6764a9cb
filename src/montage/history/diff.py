"""Line-level diff between two versions of a document."""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field

from montage.history.elements import ChangeElement, ChangeTag


@dataclass
class DiffResult:
    """Ordered element runs plus the number of non-SAME runs."""

    elements: list[ChangeElement] = field(default_factory=list)
    distance: int = 0


def diff(old: str, new: str) -> DiffResult:
    """Diff *old* against *new* line by line.

    Lines keep their separators, so concatenating the SAME + ADD runs yields
    *new* exactly and SAME + REMOVE runs yields *old*. Adjacent runs with the
    same tag are merged into one element. A replaced block becomes a REMOVE
    run followed by an ADD run.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)

    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    runs: list[tuple[ChangeTag, list[str]]] = []

    for op, i1, i2, j1, j2 in matcher.get_opcodes():
        if op == "equal":
            _push(runs, ChangeTag.SAME, old_lines[i1:i2])
        elif op == "delete":
            _push(runs, ChangeTag.REMOVE, old_lines[i1:i2])
        elif op == "insert":
            _push(runs, ChangeTag.ADD, new_lines[j1:j2])
        else:  # replace
            _push(runs, ChangeTag.REMOVE, old_lines[i1:i2])
            _push(runs, ChangeTag.ADD, new_lines[j1:j2])

    elements = [ChangeElement(tag=tag, content="".join(lines)) for tag, lines in runs]
    distance = sum(1 for e in elements if e.tag is not ChangeTag.SAME)
    return DiffResult(elements=elements, distance=distance)


def _push(runs: list[tuple[ChangeTag, list[str]]], tag: ChangeTag, lines: list[str]) -> None:
    if not lines:
        return
    if runs and runs[-1][0] is tag:
        runs[-1][1].extend(lines)
    else:
        runs.append((tag, list(lines)))
