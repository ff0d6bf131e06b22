"""Tests for spantable.width -- string measures and column widths."""

from __future__ import annotations

from spantable.width import (
    ColumnWidths,
    column_widths,
    delimiter_width,
    display_width,
    string_length,
    to_alignment,
)


class TestStringLength:
    def test_counts_code_points(self) -> None:
        assert string_length("abc") == 3
        assert string_length("古") == 1
        assert string_length("") == 0


class TestDisplayWidth:
    def test_ascii(self) -> None:
        assert display_width("hello") == 5

    def test_empty(self) -> None:
        assert display_width("") == 0

    def test_wide_cjk(self) -> None:
        assert display_width("古") == 2
        assert display_width("中文") == 4

    def test_emoji(self) -> None:
        assert display_width("🤔") == 2

    def test_ignores_ansi_codes(self) -> None:
        assert display_width("\x1b[31mred\x1b[0m") == 3

    def test_combining_mark_is_zero_width(self) -> None:
        assert display_width("e\u0301") == 1

    def test_cached_result_is_stable(self) -> None:
        assert display_width("日本") == display_width("日本") == 4


class TestAlignmentCodes:
    def test_full_names(self) -> None:
        assert to_alignment("left") == "l"
        assert to_alignment("right") == "r"
        assert to_alignment("center") == "c"

    def test_case_insensitive(self) -> None:
        assert to_alignment("Center") == "c"
        assert to_alignment("L") == "l"

    def test_unaligned(self) -> None:
        assert to_alignment("none") == ""
        assert to_alignment("") == ""
        assert to_alignment(None) == ""
        assert to_alignment("x") == ""

    def test_delimiter_width(self) -> None:
        assert delimiter_width("c") == 3
        assert delimiter_width("l") == 2
        assert delimiter_width("r") == 2
        assert delimiter_width("") == 1


class TestColumnWidths:
    def test_ragged_rows(self) -> None:
        widths = column_widths([["a", "bbb"], ["cc"], []])
        assert widths.content == [2, 3]
        assert widths.delimiter == [1, 1]
        assert widths.sizes == [2, 3]

    def test_delimiter_minimum_wins(self) -> None:
        widths = column_widths([["a", "b"]], ["c", "l"])
        assert widths == ColumnWidths(content=[1, 1], delimiter=[3, 2])
        assert widths.sizes == [3, 2]

    def test_custom_measure(self) -> None:
        widths = column_widths([["古", "a"]], measure=display_width)
        assert widths.content == [2, 1]
