"""Tests for spantable.spans -- span marker resolution."""

from __future__ import annotations

from spantable.parse import from_markdown
from spantable.spans import demote_marker, marker_of, resolve_span_markers
from spantable.types import (
    Point,
    Position,
    Table,
    TableCell,
    TableColspanLeft,
    TableColspanRight,
    TableRow,
    TableRowspan,
    TableSection,
    Text,
)


def _table(text: str, positions: bool = False) -> Table:
    return from_markdown(text, positions=positions).children[0]


def _texts(row: TableRow) -> list[str]:
    return ["".join(child.value for child in cell.children) for cell in row.children]


def _marker_cell(marker) -> TableCell:
    return TableCell(children=[marker])


# ---------------------------------------------------------------------------
# Marker detection
# ---------------------------------------------------------------------------


class TestMarkerOf:
    def test_single_marker(self) -> None:
        assert marker_of(_marker_cell(TableRowspan())) == "table_rowspan"
        assert marker_of(_marker_cell(TableColspanLeft())) == "table_colspan_left"

    def test_empty_cell_is_not_a_marker(self) -> None:
        assert marker_of(TableCell()) is None

    def test_marker_with_other_content_is_not_a_marker(self) -> None:
        cell = TableCell(children=[TableColspanRight(), Text(value="x")])
        assert marker_of(cell) is None

    def test_text_cell(self) -> None:
        assert marker_of(TableCell(children=[Text(value=">")])) is None


class TestDemoteMarker:
    def test_literals(self) -> None:
        right = _marker_cell(TableColspanRight())
        demote_marker(right)
        assert right.children == [Text(value=">")]

        rowspan = _marker_cell(TableRowspan())
        demote_marker(rowspan)
        assert rowspan.children == [Text(value="^")]

        left = _marker_cell(TableColspanLeft())
        demote_marker(left)
        assert left.children == []

    def test_keeps_marker_position(self) -> None:
        position = Position(start=Point(line=1, column=3, offset=2), end=Point(line=1, column=4, offset=3))
        cell = _marker_cell(TableRowspan(position=position))
        demote_marker(cell)
        assert cell.children[0].position == position


# ---------------------------------------------------------------------------
# Rowspan
# ---------------------------------------------------------------------------


class TestRowspan:
    def test_rowspan_chain(self) -> None:
        table = _table("|1|2|3|\n| -: | - | :- |\n|^|b|\n|^|c|\n|^^|d|")
        body = table.children[1]
        assert len(body.children) == 3

        first = body.children[0].children
        assert first[0].children == [Text(value="^")]
        assert first[0].rowspan == 3
        assert first[0].properties == {"rowspan": 3, "align": "right"}
        assert first[1].properties == {}
        assert first[2].children == []
        assert first[2].properties == {"align": "left"}

        assert _texts(body.children[1]) == ["c", ""]
        assert body.children[1].children[1].properties == {"align": "left"}
        assert _texts(body.children[2]) == ["d", ""]

    def test_rowspan_in_first_row_of_head_is_literal(self) -> None:
        table = _table("| ^ |\n| - |", positions=True)
        cell = table.children[0].children[0].children[0]
        assert cell.children[0].value == "^"
        assert cell.children[0].position.start.offset == 2
        assert cell.rowspan is None

    def test_rowspan_does_not_cross_sections(self) -> None:
        table = _table("| a |\n| - |\n| ^ |")
        head, body = table.children
        assert head.children[0].children[0].rowspan is None
        assert _texts(body.children[0]) == ["^"]

    def test_rowspan_under_short_row_is_literal(self) -> None:
        table = _table("| a |\n| - |\n| b |\n| c | ^ |")
        body = table.children[1]
        assert _texts(body.children[1]) == ["c", "^"]
        assert body.children[0].children[0].rowspan is None

    def test_rowspan_merges_into_same_column(self) -> None:
        table = _table("| a | b |\n| - | - |\n| c | d |\n| e | ^ |")
        body = table.children[1]
        assert body.children[0].children[1].rowspan == 2
        assert body.children[0].children[0].rowspan is None
        assert _texts(body.children[1]) == ["e"]


# ---------------------------------------------------------------------------
# Colspan
# ---------------------------------------------------------------------------


class TestColspan:
    def test_mixed_colspan_markers(self) -> None:
        table = _table("|1||\n| -: | - |\n|> |b|\n|a||\n||>|")
        head, body = table.children

        header = head.children[0].children
        assert len(header) == 1
        assert header[0].colspan == 2
        assert header[0].properties == {"colspan": 2, "align": "right"}

        first, second, third = body.children
        assert _texts(first) == ["b"]
        assert first.children[0].colspan == 2
        assert first.children[0].properties == {"colspan": 2}

        assert _texts(second) == ["a"]
        assert second.children[0].properties == {"align": "right", "colspan": 2}

        assert _texts(third) == ["", ">"]
        assert third.children[0].properties == {"align": "right"}
        assert third.children[1].properties == {}

    def test_colspan_right_at_row_end_is_literal(self) -> None:
        table = _table("| a | b |\n| - | - |\n| c | > |")
        row = table.children[1].children[0]
        assert _texts(row) == ["c", ">"]
        assert all(cell.colspan is None for cell in row.children)

    def test_colspan_left_at_row_start_is_empty(self) -> None:
        table = _table("| a | b |\n| - | - |\n|| c |")
        row = table.children[1].children[0]
        assert _texts(row) == ["", "c"]
        assert row.children[0].children == []

    def test_chained_colspan_right(self) -> None:
        table = _table("| a | b | c |\n| - | - | - |\n| > | > | c |")
        row = table.children[1].children[0]
        assert _texts(row) == ["c"]
        assert row.children[0].colspan == 3

    def test_chained_colspan_left(self) -> None:
        table = _table("| a | b | c |\n| - | - | - |\n| x |||")
        row = table.children[1].children[0]
        assert _texts(row) == ["x"]
        assert row.children[0].colspan == 3

    def test_colspan_left_never_overrides_colspan_right(self) -> None:
        table = _table("| a | b |\n| - | - |\n| > ||")
        row = table.children[1].children[0]
        assert len(row.children) == 1
        assert row.children[0].children == []
        assert row.children[0].colspan == 2

    def test_right_left_right_chain(self) -> None:
        table = _table("| a | b | c | d |\n| - | - | - | - |\n| > || > | d |")
        row = table.children[1].children[0]
        assert _texts(row) == ["", "d"]
        assert row.children[0].colspan == 2
        assert row.children[1].colspan == 2

    def test_blank_cell_is_not_a_marker(self) -> None:
        table = _table("| a | b |\n| - | - |\n| c | |")
        row = table.children[1].children[0]
        assert _texts(row) == ["c", ""]
        assert row.children[0].colspan is None


# ---------------------------------------------------------------------------
# Alignment projection and direct use
# ---------------------------------------------------------------------------


class TestAlignmentProjection:
    def test_every_cell_in_aligned_column(self) -> None:
        table = _table("| a | b | c |\n| :- | - | :-: |\n| d | e | f |")
        for section in table.children:
            cells = section.children[0].children
            assert cells[0].properties == {"align": "left"}
            assert cells[1].properties == {}
            assert cells[2].properties == {"align": "center"}

    def test_excess_cells_are_unaligned(self) -> None:
        table = _table("| a |\n| -: |\n| b | c |")
        cells = table.children[1].children[0].children
        assert cells[0].properties == {"align": "right"}
        assert cells[1].properties == {}


class TestResolveDirectly:
    def test_rows_outside_sections_are_skipped(self) -> None:
        row = TableRow(children=[TableCell(children=[Text(value="a")]), _marker_cell(TableColspanLeft())])
        table = Table(align=["left", None], children=[row])
        assert resolve_span_markers(table) is table
        assert len(table.children[0].children) == 2

    def test_built_by_hand(self) -> None:
        body = TableSection(
            type="table_body",
            children=[
                TableRow(children=[TableCell(children=[Text(value="a")]), TableCell(children=[Text(value="b")])]),
                TableRow(children=[_marker_cell(TableRowspan()), _marker_cell(TableRowspan())]),
            ],
        )
        table = resolve_span_markers(Table(align=[None, None], children=[body]))
        first, second = table.children[0].children
        assert [cell.rowspan for cell in first.children] == [2, 2]
        assert second.children == []
