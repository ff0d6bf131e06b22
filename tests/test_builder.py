"""Tests for spantable.builder -- token stream to syntax tree."""

from __future__ import annotations

import pytest
from markdown_it import MarkdownIt
from markdown_it.token import Token

from spantable.builder import TableTreeBuilder
from spantable.parse import create_parser
from spantable.types import (
    Code,
    Heading,
    Html,
    InlineCode,
    Paragraph,
    Strong,
    Table,
    TableColspanLeft,
    TableColspanRight,
    TableRowspan,
    Text,
    ThematicBreak,
)


def _build(text: str, positions: bool = True):
    tokens = create_parser().parse(text)
    return TableTreeBuilder(text, positions=positions).build(tokens)


def _table(text: str, positions: bool = True) -> Table:
    root = _build(text, positions)
    return next(node for node in root.children if isinstance(node, Table))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class TestTables:
    def test_sections_rows_and_cells(self) -> None:
        table = _table("| a | b |\n| - | - |\n| c | d |\n| e |")
        head, body = table.children
        assert head.type == "table_head"
        assert body.type == "table_body"
        assert [cell.kind for cell in head.children[0].children] == ["header", "header"]
        assert [cell.kind for cell in body.children[0].children] == ["data", "data"]
        assert len(body.children[1].children) == 1

    def test_alignment_none_becomes_null(self) -> None:
        table = _table("| a | b | c | d |\n| - | :- | -: | :-: |")
        assert table.align == [None, "left", "right", "center"]

    def test_tag_names(self) -> None:
        table = _table("| a |\n| - |\n| b |")
        head, body = table.children
        assert table.tag_name == "table"
        assert head.tag_name == "thead"
        assert body.tag_name == "tbody"
        assert head.children[0].tag_name == "tr"
        assert head.children[0].children[0].tag_name == "th"
        assert body.children[0].children[0].tag_name == "td"

    def test_markers_are_nodes_before_resolution(self) -> None:
        table = _table("| a | b | c |\n| - | - | - |\n| > | ^ ||")
        cells = table.children[1].children[0].children
        assert isinstance(cells[0].children[0], TableColspanRight)
        assert isinstance(cells[1].children[0], TableRowspan)
        assert isinstance(cells[2].children[0], TableColspanLeft)

    def test_missing_align_is_a_contract_violation(self) -> None:
        md = MarkdownIt("commonmark").enable("table")
        tokens = md.parse("| a |\n| - |")
        with pytest.raises(ValueError, match="align"):
            TableTreeBuilder().build(tokens)

    def test_marker_outside_cell_is_ignored(self) -> None:
        root = TableTreeBuilder().build([Token("table_colspan_right", "", 0)])
        assert root.children == []

    def test_cell_positions_from_meta(self) -> None:
        table = _table("| a |\n| - |\n| bc |")
        cell = table.children[1].children[0].children[0]
        assert cell.position.start.offset == 12
        assert cell.position.end.offset == 18


class TestCodeInTables:
    def test_escaped_pipe_unescaped_in_table(self) -> None:
        table = _table("| `\\|` |\n | --- |", positions=False)
        cell = table.children[0].children[0].children[0]
        assert cell.children == [InlineCode(value="|")]

    def test_escaped_pipe_kept_outside_table(self) -> None:
        root = _build("`\\|`", positions=False)
        assert root.children[0].children == [InlineCode(value="\\|")]

    def test_escaped_backslash_kept(self) -> None:
        table = _table("| `\\\\|`\\\\` b |\n | --- | --- |", positions=False)
        first, second = table.children[0].children[0].children
        assert first.children == [Text(value="`\\")]
        assert second.children == [InlineCode(value="\\\\"), Text(value=" b")]


# ---------------------------------------------------------------------------
# Flow content
# ---------------------------------------------------------------------------


class TestFlowContent:
    def test_paragraph_and_heading(self) -> None:
        root = _build("## Title\n\nsome *text*", positions=False)
        heading, paragraph = root.children
        assert isinstance(heading, Heading)
        assert heading.depth == 2
        assert heading.children == [Text(value="Title")]
        assert isinstance(paragraph, Paragraph)
        assert [child.type for child in paragraph.children] == ["text", "emphasis"]

    def test_code_blocks(self) -> None:
        root = _build("```py\nx = 1\n```\n\n    indented\n")
        fenced, indented = root.children
        assert fenced == Code(lang="py", value="x = 1", position=fenced.position)
        assert indented.lang is None
        assert indented.value == "indented"

    def test_thematic_break_and_html(self) -> None:
        root = _build("***\n\n<div>x</div>\n")
        assert isinstance(root.children[0], ThematicBreak)
        assert isinstance(root.children[1], Html)
        assert root.children[1].value == "<div>x</div>"

    def test_lists_and_quotes_are_flattened(self) -> None:
        root = _build("- a\n- b\n\n> c")
        assert [child.type for child in root.children] == ["paragraph", "paragraph", "paragraph"]

    def test_soft_breaks_merge_into_text(self) -> None:
        root = _build("a\nb", positions=False)
        assert root.children[0].children == [Text(value="a\nb")]

    def test_no_empty_text_around_emphasis(self) -> None:
        table = _table("| **a** b |\n| - |", positions=False)
        cell = table.children[0].children[0].children[0]
        assert cell.children == [Strong(children=[Text(value="a")]), Text(value=" b")]

    def test_inline_nodes(self) -> None:
        root = _build('**a** ~~b~~ [c](http://x "t") ![d](e.png) <i>f</i>  \ng')
        types = [child.type for child in root.children[0].children]
        assert types == [
            "strong",
            "text",
            "delete",
            "text",
            "link",
            "text",
            "image",
            "text",
            "html",
            "text",
            "html",
            "break",
            "text",
        ]
        link = root.children[0].children[4]
        assert link.url == "http://x"
        assert link.title == "t"
        image = root.children[0].children[6]
        assert image.alt == "d"


# ---------------------------------------------------------------------------
# Positions and stack errors
# ---------------------------------------------------------------------------


class TestPositions:
    def test_block_position(self) -> None:
        root = _build("a\n\nbc\n")
        paragraph = root.children[1]
        assert paragraph.position.start.line == 3
        assert paragraph.position.start.offset == 3
        assert paragraph.position.end.column == 3

    def test_table_without_trailing_pipes(self) -> None:
        table = _table("| a\n| -")
        head = table.children[0]
        row = head.children[0]
        cell = row.children[0]
        text = cell.children[0]
        assert text.position.model_dump() == {
            "start": {"line": 1, "column": 3, "offset": 2},
            "end": {"line": 1, "column": 4, "offset": 3},
        }
        for node in (cell, row):
            assert node.position.start.offset == 0
            assert node.position.end.offset == 3
        for node in (head, table):
            assert node.position.start.offset == 0
            assert node.position.end.model_dump() == {"line": 2, "column": 4, "offset": 7}

    def test_aligned_cells_include_their_pipes(self) -> None:
        table = _table("| a | b | c | d |\n| - | :- | -: | :-: |")
        head = table.children[0]
        cells = head.children[0].children
        assert [(c.position.start.offset, c.position.end.offset) for c in cells] == [
            (0, 4),
            (4, 8),
            (8, 12),
            (12, 17),
        ]
        assert [c.children[0].position.start.offset for c in cells] == [2, 6, 10, 14]
        assert cells[3].position.end.column == 18
        assert head.children[0].position.end.offset == 17
        assert head.position.end.model_dump() == {"line": 2, "column": 22, "offset": 39}

    def test_cell_without_leading_pipe(self) -> None:
        table = _table("a | b\n-- | --")
        first, second = table.children[0].children[0].children
        assert (first.position.start.offset, first.position.end.offset) == (0, 2)
        assert (second.position.start.offset, second.position.end.offset) == (2, 5)
        assert second.children[0].position.start.offset == 4

    def test_inline_positions_in_paragraph(self) -> None:
        root = _build("x\n\nab `c` d\ne")
        first, code, rest = root.children[1].children
        assert (first.position.start.offset, first.position.end.offset) == (3, 6)
        assert (code.position.start.offset, code.position.end.offset) == (6, 9)
        assert rest.value == " d\ne"
        assert rest.position.end.model_dump() == {"line": 4, "column": 2, "offset": 13}

    def test_escaped_text_has_no_position(self) -> None:
        root = _build("a\\*b")
        assert root.children[0].children[0].value == "a*b"
        assert root.children[0].children[0].position is None

    def test_positions_off(self) -> None:
        root = _build("| a |\n| - |\n| ^ |\n\ntext", positions=False)
        assert root.position is None
        table = root.children[0]
        assert table.position is None
        assert table.children[1].children[0].children[0].position is None
        assert table.children[1].children[0].children[0].children[0].position is None


class TestStack:
    def test_mismatched_close(self) -> None:
        with pytest.raises(ValueError, match="Cannot close paragraph"):
            TableTreeBuilder().build([Token("paragraph_close", "p", -1)])

    def test_unclosed_node(self) -> None:
        with pytest.raises(ValueError, match="Unclosed"):
            TableTreeBuilder().build([Token("paragraph_open", "p", 1)])
