"""Pad short table rows to the declared column count."""

from __future__ import annotations

from spantable.types import Table, TableCell, TableSection


def normalize_rows(table: Table) -> Table:
    """Append empty cells to every section row shorter than ``len(table.align)``.

    Rows that are already long enough (or longer) are left alone, as are rows
    placed directly under the table.  Padding cells in the head section are
    header cells.  Mutates *table* in place and returns it.
    """
    columns = len(table.align)
    for section in table.children:
        if not isinstance(section, TableSection):
            continue
        kind = "header" if section.is_head else "data"
        for row in section.children:
            missing = columns - len(row.children)
            row.children.extend(TableCell(kind=kind) for _ in range(missing))
    return table
