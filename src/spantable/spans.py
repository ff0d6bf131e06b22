"""Resolution of span marker cells.

A marker cell holds exactly one marker node and asks to be merged into a
neighbour:

- ``table_colspan_right`` (``>``) widens the cell on its right;
- ``table_colspan_left`` (``||``) widens the cell on its left;
- ``table_rowspan`` (``^``) heightens the cell above it.

Sections, rows and cells are visited last to first.  A left-span marker has
to know whether its left neighbour is a right-span marker, and the cell a
marker merges into may itself be a marker that is resolved later in the
pass, so spans accumulate along chains of markers.  Merged markers are only
recorded while a row is visited and removed once the section is done.
Markers that have nothing to merge into become literal text (``>``, ``^``)
or an empty cell.
"""

from __future__ import annotations

import logging

from spantable.types import (
    MARKER_TYPES,
    Table,
    TableCell,
    TableRow,
    TableSection,
    Text,
)

logger = logging.getLogger(__name__)

_LITERALS = {
    "table_colspan_left": "",
    "table_colspan_right": ">",
    "table_rowspan": "^",
}


def marker_of(cell: TableCell) -> str | None:
    """Type of the marker *cell* consists of, or ``None`` for ordinary cells."""
    if len(cell.children) != 1:
        return None
    node_type = cell.children[0].type
    return node_type if node_type in MARKER_TYPES else None


def demote_marker(cell: TableCell) -> None:
    """Turn an unresolvable marker cell into literal text, keeping its position."""
    marker = cell.children[0]
    literal = _LITERALS[marker.type]
    logger.debug("Demoting %s marker to %r", marker.type, literal)
    if literal:
        cell.children = [Text(value=literal, position=marker.position)]
    else:
        cell.children = []


def _add_span(cell: TableCell, name: str, amount: int) -> None:
    value = (getattr(cell, name) or 1) + amount
    setattr(cell, name, value)
    cell.properties[name] = value


def _resolve_row(section: TableSection, i: int, align: list, deleted: list[tuple[int, int]]) -> None:
    row: TableRow = section.children[i]
    cells = row.children
    for j in range(len(cells) - 1, -1, -1):
        cell = cells[j]
        if j < len(align) and align[j]:
            cell.properties["align"] = align[j]

        marker = marker_of(cell)
        if marker == "table_colspan_right":
            if j >= len(cells) - 1:
                demote_marker(cell)
                continue
            for k in range(j + 1, len(cells)):
                _add_span(cells[k], "colspan", 1)
                if marker_of(cells[k]) != "table_colspan_right":
                    break
            deleted.append((i, j))

        elif marker == "table_colspan_left":
            if j < 1 or marker_of(cells[j - 1]) == "table_colspan_right":
                demote_marker(cell)
                continue
            _add_span(cells[j - 1], "colspan", cell.colspan or 1)
            deleted.append((i, j))

        elif marker == "table_rowspan":
            above = section.children[i - 1].children if i > 0 else []
            if j >= len(above):
                demote_marker(cell)
                continue
            _add_span(above[j], "rowspan", cell.rowspan or 1)
            deleted.append((i, j))


def resolve_span_markers(table: Table) -> Table:
    """Merge or demote every marker cell of *table*; mutates it in place and returns it.

    Every cell in a column with an alignment gets that alignment in its
    ``properties``.  Rows directly under the table are skipped.
    """
    align = table.align
    for m in range(len(table.children) - 1, -1, -1):
        section = table.children[m]
        if not isinstance(section, TableSection):
            continue

        deleted: list[tuple[int, int]] = []
        for i in range(len(section.children) - 1, -1, -1):
            _resolve_row(section, i, align, deleted)

        # Collected right to left per row, so indexes stay valid while deleting.
        for i, j in deleted:
            del section.children[i].children[j]
    return table
