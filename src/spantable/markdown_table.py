"""Aligned pipe-table text layout.

Turns a matrix of already-rendered cell strings into markdown table lines:
one line per row, with the alignment delimiter row inserted after the first
row (or before all rows for a headless table).
"""

from __future__ import annotations

from typing import Any, Sequence

from spantable.width import StringLength, column_widths, to_alignment
from spantable.width import string_length as _code_points


def _serialize(value: Any) -> str:
    return "" if value is None else str(value)


def _alignments(align: str | Sequence[str | None] | None, count: int) -> list[str]:
    if align is None or isinstance(align, str):
        code = to_alignment(align)
        return [code] * count
    return [to_alignment(align[i]) if i < len(align) else "" for i in range(count)]


def markdown_table(
    table: Sequence[Sequence[Any]],
    *,
    align: str | Sequence[str | None] | None = None,
    padding: bool = True,
    align_delimiters: bool = True,
    delimiter_start: bool = True,
    delimiter_end: bool = True,
    string_length: StringLength | None = None,
    headless: bool = False,
) -> str:
    """Lay out *table* as markdown table text.

    Args:
        table: Rows of cell values; ``None`` becomes an empty cell and rows
            may be ragged (missing cells are written empty).
        align: One alignment for every column, or one per column.  Accepts
            ``left``/``right``/``center``/``none`` or ``l``/``r``/``c``/``""``.
        padding: Put a space between each pipe and the cell text.
        align_delimiters: Pad cells so the pipes line up across rows.  When
            off, delimiter-row cells use a single dash.
        delimiter_start: Start each line with a pipe.
        delimiter_end: End each line with a pipe.
        string_length: Width measure used for alignment.
        headless: Write the delimiter row first instead of after the first
            row.

    Returns:
        The table text without a trailing newline.
    """
    measure = string_length or _code_points
    cells = [[_serialize(value) for value in row] for row in table]
    columns = max((len(row) for row in cells), default=0)
    alignments = _alignments(align, columns)

    widths = column_widths(cells, alignments, measure) if align_delimiters else None
    # A column is as wide as its longest cell or its delimiter cell.
    longest = widths.sizes if widths else []
    sizes: list[list[int]] = [[measure(cell) for cell in row] for row in cells] if widths else [[] for _ in cells]

    delimiter_cells: list[str] = []
    for index, code in enumerate(alignments):
        before = ":" if code in ("l", "c") else ""
        after = ":" if code in ("r", "c") else ""
        dashes = longest[index] - len(before) - len(after) if widths else 1
        delimiter_cells.append(before + "-" * dashes + after)
    delimiter_sizes = list(longest)

    position = 0 if headless else 1
    cells.insert(position, delimiter_cells)
    sizes.insert(position, delimiter_sizes)

    lines = []
    for row, row_sizes in zip(cells, sizes):
        line: list[str] = []
        for index in range(columns):
            cell = row[index] if index < len(row) else ""
            before = after = ""
            if align_delimiters:
                size = longest[index] - (row_sizes[index] if index < len(row_sizes) else 0)
                code = alignments[index]
                if code == "r":
                    before = " " * size
                elif code == "c":
                    before = " " * ((size + 1) // 2)
                    after = " " * (size // 2)
                else:
                    after = " " * size

            if delimiter_start and index == 0:
                line.append("|")
            if padding and not (not align_delimiters and cell == "") and (delimiter_start or index):
                line.append(" ")
            line.append(before + cell + after)
            if padding:
                line.append(" ")
            if delimiter_end or index != columns - 1:
                line.append("|")

        text = "".join(line)
        lines.append(text if delimiter_end else text.rstrip(" "))

    return "\n".join(lines)