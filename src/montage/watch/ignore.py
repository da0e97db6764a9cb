"""gitignore-style path filtering.

Supported syntax, per line of an ignore file:
  - blank lines and ``#`` comments are skipped
  - ``!pattern`` re-includes a path excluded by an earlier rule
  - a trailing ``/`` restricts the rule to directories
  - a pattern containing ``/`` (other than trailing) is anchored to the
    directory holding the ignore file; otherwise it matches a name at any depth
  - ``*`` and ``?`` never cross ``/``; ``**`` does

The last matching rule wins. Excluded directories are pruned by the walker,
so files below them cannot be re-included (same as git).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class IgnoreRule:
    pattern: str
    regex: re.Pattern[str]
    base: str = ""  # posix directory (relative to the root) owning the rule
    negated: bool = False
    dir_only: bool = False
    anchored: bool = False

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.dir_only and not is_dir:
            return False
        if self.base:
            if not rel_path.startswith(self.base + "/"):
                return False
            rel_path = rel_path[len(self.base) + 1 :]
        target = rel_path if self.anchored else rel_path.rsplit("/", 1)[-1]
        return self.regex.fullmatch(target) is not None


def _glob_to_regex(glob: str) -> re.Pattern[str]:
    out: list[str] = []
    i, n = 0, len(glob)
    while i < n:
        c = glob[i]
        if glob.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif glob.startswith("/**", i) and i + 3 == n:
            out.append("/.*")
            i += 3
        elif glob.startswith("**", i):
            out.append(".*")
            i += 2
        elif c == "*":
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            end = glob.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
                i += 1
            else:
                body = glob[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
        elif c == "\\" and i + 1 < n:
            out.append(re.escape(glob[i + 1]))
            i += 2
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("".join(out))


def parse_rule(line: str, base: str = "") -> IgnoreRule | None:
    """Parse one ignore-file line; returns None for blanks and comments."""
    line = line.rstrip("\n").rstrip("\r")
    if not line.strip() or line.startswith("#"):
        return None
    line = line.rstrip(" ") if not line.endswith("\\ ") else line

    negated = line.startswith("!")
    if negated:
        line = line[1:]
    elif line.startswith("\\!") or line.startswith("\\#"):
        line = line[1:]

    dir_only = line.endswith("/")
    if dir_only:
        line = line.rstrip("/")
    anchored = "/" in line
    line = line.lstrip("/")
    if not line:
        return None

    return IgnoreRule(
        pattern=line,
        regex=_glob_to_regex(line),
        base=base,
        negated=negated,
        dir_only=dir_only,
        anchored=anchored,
    )


class IgnoreRules:
    """An ordered, immutable set of ignore rules.

    ``extend()`` returns a new instance so sibling directories do not see
    each other's nested ignore files.
    """

    def __init__(self, rules: list[IgnoreRule] | None = None) -> None:
        self._rules: tuple[IgnoreRule, ...] = tuple(rules or ())

    @classmethod
    def from_patterns(cls, patterns: list[str], base: str = "") -> IgnoreRules:
        rules = [r for r in (parse_rule(p, base) for p in patterns) if r is not None]
        return cls(rules)

    def extend(self, patterns: list[str], base: str = "") -> IgnoreRules:
        added = IgnoreRules.from_patterns(patterns, base)
        if not added._rules:
            return self
        return IgnoreRules(list(self._rules + added._rules))

    def extend_from_file(self, ignore_file: Path, base: str = "") -> IgnoreRules:
        """Append the rules of *ignore_file*; unreadable files add nothing."""
        try:
            lines = ignore_file.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError:
            return self
        return self.extend(lines, base)

    def is_ignored(self, rel_path: str, is_dir: bool = False) -> bool:
        """Return True if *rel_path* (posix, relative to the root) is excluded."""
        ignored = False
        for rule in self._rules:
            if rule.matches(rel_path, is_dir):
                ignored = not rule.negated
        return ignored

    def __len__(self) -> int:
        return len(self._rules)
