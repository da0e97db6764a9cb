"""Diff encoding and version reconstruction."""

from montage.history.diff import DiffResult, diff
from montage.history.elements import ChangeElement, ChangeTag, decode_elements, encode_elements
from montage.history.snapshot import (
    Snippet,
    extract_snippets,
    reconstruct_current,
    reconstruct_previous,
    render_as_unified,
)

__all__ = [
    "ChangeElement",
    "ChangeTag",
    "DiffResult",
    "Snippet",
    "decode_elements",
    "diff",
    "encode_elements",
    "extract_snippets",
    "reconstruct_current",
    "reconstruct_previous",
    "render_as_unified",
]
