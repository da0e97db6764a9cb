"""Tests for the line-level diff."""

from __future__ import annotations

import pytest

from montage.history.diff import diff
from montage.history.elements import ChangeElement, ChangeTag, decode_elements, encode_elements
from montage.history.snapshot import current_text, previous_text


def test_single_line_replacement():
    result = diff("a\nb\nc\n", "a\nx\nc\n")
    assert result.distance == 2
    assert result.elements == [
        ChangeElement(ChangeTag.SAME, "a\n"),
        ChangeElement(ChangeTag.REMOVE, "b\n"),
        ChangeElement(ChangeTag.ADD, "x\n"),
        ChangeElement(ChangeTag.SAME, "c\n"),
    ]


def test_identical_text_has_zero_distance():
    result = diff("a\nb\n", "a\nb\n")
    assert result.distance == 0
    assert result.elements == [ChangeElement(ChangeTag.SAME, "a\nb\n")]


def test_both_empty():
    result = diff("", "")
    assert result.distance == 0
    assert result.elements == []


def test_from_empty_is_one_add():
    result = diff("", "hello\n")
    assert result.distance == 1
    assert result.elements == [ChangeElement(ChangeTag.ADD, "hello\n")]


def test_to_empty_is_one_remove():
    result = diff("hello\nworld\n", "")
    assert result.elements == [ChangeElement(ChangeTag.REMOVE, "hello\nworld\n")]


def test_adjacent_lines_merge_into_one_run():
    result = diff("a\n", "a\nb\nc\nd\n")
    assert result.elements == [
        ChangeElement(ChangeTag.SAME, "a\n"),
        ChangeElement(ChangeTag.ADD, "b\nc\nd\n"),
    ]
    assert result.distance == 1


def test_no_two_adjacent_runs_share_a_tag():
    old = "one\ntwo\nthree\nfour\nfive\n"
    new = "zero\none\nTWO\nthree\nfive\nsix\n"
    tags = [e.tag for e in diff(old, new).elements]
    assert all(a is not b for a, b in zip(tags, tags[1:]))


def test_missing_final_newline_is_a_change():
    result = diff("a\nb", "a\nb\n")
    assert result.distance == 2
    assert current_text(result.elements) == "a\nb\n"
    assert previous_text(result.elements) == "a\nb"


def test_crlf_separators_preserved():
    old = "a\r\nb\r\n"
    new = "a\r\nc\r\n"
    result = diff(old, new)
    assert current_text(result.elements) == new
    assert previous_text(result.elements) == old


def test_both_sides_recoverable():
    old = "alpha\nbeta\ngamma\ndelta\n"
    new = "alpha\ngamma\nepsilon\ndelta\nzeta"
    result = diff(old, new)
    assert current_text(result.elements) == new
    assert previous_text(result.elements) == old


def test_distance_counts_changed_runs():
    result = diff("a\nb\nc\nd\n", "a\nB\nc\nD\n")
    assert result.distance == 4


# ---------------------------------------------------------------------------
# Both sides survive every separator str.splitlines knows
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("old", "new"),
    [
        ("", ""),
        ("", "x"),
        ("x", ""),
        ("x", "x\n"),
        ("x\n", "y"),
        ("one line", "one line, edited"),
        ("a\nb", "a\nc"),
        ("a\rb\r", "a\rc\r"),
        ("a\rb", "a\r\nb"),
        ("a\x0bb", "a\x0bc"),
        ("a\x0cb\n", "a\nb\n"),
        ("a\u2028b", "a\u2028b\u2029c"),
        ("a\x1cb\x85c", "a\x1cB\x85c"),
        ("\n\n\n", "\n\r\n\r"),
        ("a\r\nb\rc\nd", "d\nc\rb\r\na"),
    ],
)
def test_round_trip_across_separators(old, new):
    result = diff(old, new)
    assert current_text(result.elements) == new
    assert previous_text(result.elements) == old
    stored = decode_elements(encode_elements(result.elements))
    assert current_text(stored) == new
    assert previous_text(stored) == old
    assert (result.distance == 0) == (old == new)
