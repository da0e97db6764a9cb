"""Enumerate the files of a watched repository."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from montage.config import DEFAULT_MAX_FILE_SIZE
from montage.watch.ignore import IgnoreRules

logger = logging.getLogger(__name__)

# Never descended into, regardless of ignore files.
_ALWAYS_SKIP_DIRS = frozenset([".git", ".hg", ".svn", ".montage"])


@dataclass
class WalkOptions:
    """Filtering applied while walking a repository."""

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    ignore: list[str] = field(default_factory=list)
    ignore_files: list[str] = field(default_factory=lambda: [".gitignore", ".ignore"])
    skip_hidden: bool = True


def is_valid_file(path: Path, max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> bool:
    """Regular file (symlinks excluded) smaller than *max_file_size* bytes."""
    try:
        st = path.lstat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and st.st_size < max_file_size


def walk_repository(root: Path, options: WalkOptions | None = None) -> Iterator[Path]:
    """Yield the valid, non-ignored files under *root* in sorted order.

    Ignore files are honoured per directory, the way git does: rules from
    ``a/.gitignore`` only apply below ``a/``. Unreadable directories are
    logged and skipped.
    """
    opts = options or WalkOptions()
    root_rules = IgnoreRules.from_patterns(opts.ignore)
    yield from _walk_dir(root, "", root_rules, opts)


def is_watched(root: Path, path: Path, options: WalkOptions | None = None) -> bool:
    """Return True if walking *root* would yield *path*.

    Used for single paths reported by a file-change notifier: applies the
    same hidden / ignore-file / validity filtering as walk_repository().
    """
    opts = options or WalkOptions()
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return False
    if not parts:
        return False

    rules = IgnoreRules.from_patterns(opts.ignore)
    directory, rel_dir = root, ""
    for depth, name in enumerate(parts):
        for ignore_name in opts.ignore_files:
            candidate = directory / ignore_name
            if candidate.is_file():
                rules = rules.extend_from_file(candidate, base=rel_dir)
        if opts.skip_hidden and name.startswith("."):
            return False
        rel_path = f"{rel_dir}/{name}" if rel_dir else name
        is_last = depth == len(parts) - 1
        if not is_last and (name in _ALWAYS_SKIP_DIRS or rules.is_ignored(rel_path, is_dir=True)):
            return False
        if is_last and rules.is_ignored(rel_path):
            return False
        directory, rel_dir = directory / name, rel_path
    return is_valid_file(path, opts.max_file_size)


def _walk_dir(directory: Path, rel_dir: str, rules: IgnoreRules, opts: WalkOptions) -> Iterator[Path]:
    for name in opts.ignore_files:
        candidate = directory / name
        if candidate.is_file():
            rules = rules.extend_from_file(candidate, base=rel_dir)

    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        logger.warning("Cannot list directory %s: %s", directory, exc)
        return

    for entry in entries:
        if opts.skip_hidden and entry.name.startswith("."):
            continue
        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            if entry.name in _ALWAYS_SKIP_DIRS or rules.is_ignored(rel_path, is_dir=True):
                continue
            yield from _walk_dir(Path(entry.path), rel_path, rules, opts)
        else:
            if rules.is_ignored(rel_path):
                continue
            path = Path(entry.path)
            if is_valid_file(path, opts.max_file_size):
                yield path
