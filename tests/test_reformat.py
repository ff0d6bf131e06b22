"""Tests for spantable.reformat -- in-place table layout."""

from __future__ import annotations

import logging

from spantable.config import Options
from spantable.parse import create_parser
from spantable.reformat import format_tables


class TestFormatTables:
    def test_only_table_lines_change(self) -> None:
        text = "# Title\n\n- one\n  - nested\n\n> quote\n> more\n\n| a | bb |\n|-|:-:|\n| c | d |\n\n*done*  \n"
        assert format_tables(text) == (
            "# Title\n\n- one\n  - nested\n\n> quote\n> more\n\n"
            "| a |  bb |\n| - | :-: |\n| c |  d  |\n\n*done*  \n"
        )

    def test_markers_are_kept(self) -> None:
        text = "| a | b | c |\n| - | - | - |\n| > | c | d |\n| ^^ | e | f |\n"
        assert format_tables(text) == "| a | b | c |\n| - | - | - |\n| > | c | d |\n| ^ | e | f |\n"

    def test_missing_trailing_newline_is_kept(self) -> None:
        assert format_tables("| a |\n|-|") == "| a |\n| - |"

    def test_short_rows_are_padded_and_excess_cells_kept(self) -> None:
        text = "| a | b |\n| - | - |\n| c |\n| d | e | f |\n"
        assert format_tables(text) == "| a | b |   |\n| - | - | - |\n| c |   |   |\n| d | e | f |\n"

    def test_several_tables(self) -> None:
        text = "|a|\n|-|\n\ntext\n\n| --- |\n|b|\n"
        assert format_tables(text) == "| a |\n| - |\n\ntext\n\n| - |\n| b |\n"

    def test_table_in_block_quote_is_left_alone(self) -> None:
        text = "> | a |\n> |-|\n"
        assert format_tables(text) == text

    def test_table_with_colspan_left_is_left_alone(self, caplog) -> None:
        text = "| a | b |\n|-|-|\n| c ||\n"
        with caplog.at_level(logging.INFO, logger="spantable.reformat"):
            assert format_tables(text) == text
        assert "`||` cells" in caplog.text

    def test_options(self) -> None:
        text = "| a | bbb |\n|-|-|\n"
        assert format_tables(text, Options(table_pipe_align=False)) == "| a | bbb |\n| - | - |\n"

    def test_crlf_becomes_lf(self) -> None:
        assert format_tables("x\r\n\r\n| a |\r\n|-|\r\n") == "x\n\n| a |\n| - |\n"

    def test_custom_parser(self) -> None:
        assert format_tables("|a|\n|-|\n", md=create_parser()) == "| a |\n| - |\n"

    def test_document_without_tables(self) -> None:
        text = "plain *text*\n\n1. item\n"
        assert format_tables(text) == text
