"""markdown-it-py block rule for pipe tables with span markers.

Extends GFM tables with:

- headless tables, which start directly with a delimiter row
  (``| --- |``) and have no header row;
- marker cells that ask for a merge with a neighbour: an empty ``||`` cell
  merges into the cell on its left, ``>`` into the cell on its right and a
  cell of ``^`` characters into the cell above.

Unlike the built-in rule, body rows keep all their cells (no truncation or
padding to the column count) and backslashes stay in cell content.  The
rule emits the usual ``table_open`` .. ``table_close`` tokens; every table
token carries ``meta["position"]`` and ``table_open`` carries
``meta["align"]``.  Marker cells produce a nesting-0 marker token instead of
an ``inline`` token.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml
from markdown_it.rules_block import StateBlock

_DELIMITER_CELL_RE = re.compile(r"^:?-+:?$")
_DELIMITER_CHARS = frozenset("|-: \t")
_ROWSPAN_RE = re.compile(r"^\^+$")

COLSPAN_LEFT = "table_colspan_left"
COLSPAN_RIGHT = "table_colspan_right"
ROWSPAN = "table_rowspan"


@dataclass
class RawCell:
    """One cell of a table line; offsets are absolute positions in the source."""

    content: str
    start: int
    end: int

    @property
    def text(self) -> str:
        return self.content.strip()

    @property
    def content_start(self) -> int:
        return self.start + len(self.content) - len(self.content.lstrip())


def split_row(text: str, offset: int = 0) -> list[RawCell]:
    """Split a table line at pipes that are not escaped by an odd run of backslashes.

    The empty segment before a leading pipe and after a trailing pipe is
    dropped, everything in between (including empty cells) is kept.
    """
    cells: list[RawCell] = []
    start = 0
    escaped = False
    for index, char in enumerate(text):
        if char == "|" and not escaped:
            cells.append(RawCell(text[start:index], offset + start, offset + index))
            start = index + 1
        escaped = char == "\\" and not escaped
    cells.append(RawCell(text[start:], offset + start, offset + len(text)))

    if text.startswith("|"):
        cells.pop(0)
    if cells and cells[-1].content == "" and cells[-1].start == offset + len(text):
        cells.pop()
    return cells


def parse_delimiter_row(text: str) -> list[str] | None:
    """Return the alignments (``left``/``right``/``center``/``none``) of a delimiter row.

    Returns ``None`` when *text* is not a delimiter row.
    """
    text = text.strip()
    if len(text) < 2 or text[0] not in "|-:":
        return None
    if text[1] not in "|-:" and not text[1].isspace():
        return None
    # "- " would be a list item
    if text[0] == "-" and text[1].isspace():
        return None
    if any(char not in _DELIMITER_CHARS for char in text):
        return None

    columns = text.split("|")
    aligns: list[str] = []
    for index, column in enumerate(columns):
        column = column.strip()
        if not column:
            if index in (0, len(columns) - 1):
                continue
            return None
        if not _DELIMITER_CELL_RE.match(column):
            return None
        if column.endswith(":"):
            aligns.append("center" if column.startswith(":") else "right")
        elif column.startswith(":"):
            aligns.append("left")
        else:
            aligns.append("none")
    return aligns or None


def marker_type(cell: RawCell) -> str | None:
    """Token type of the span marker *cell* stands for, if any."""
    if cell.content == "":
        return COLSPAN_LEFT
    text = cell.text
    if text == ">":
        return COLSPAN_RIGHT
    if _ROWSPAN_RE.match(text):
        return ROWSPAN
    return None


# ---------------------------------------------------------------------------
# Block rule
# ---------------------------------------------------------------------------


def _line_text(state: StateBlock, line: int) -> tuple[str, int]:
    start = state.bMarks[line] + state.tShift[line]
    return state.src[start : state.eMarks[line]].rstrip(), start


def _point(state: StateBlock, line: int, offset: int) -> dict[str, int]:
    return {"line": line + 1, "column": offset - state.bMarks[line] + 1, "offset": offset}


def _position(state: StateBlock, start: tuple[int, int], end: tuple[int, int]) -> dict[str, Any]:
    return {"start": _point(state, *start), "end": _point(state, *end)}


def _is_code_indented(state: StateBlock, line: int) -> bool:
    return state.sCount[line] - state.blkIndent >= 4


def _ends_table(state: StateBlock, line: int, end_line: int, terminators: list[Any]) -> bool:
    if state.sCount[line] < state.blkIndent or _is_code_indented(state, line):
        return True
    if state.isEmpty(line):
        return True
    return any(rule(state, line, end_line, True) for rule in terminators)


def _push_row(state: StateBlock, line: int, cell_tag: str) -> None:
    text, offset = _line_text(state, line)
    line_end = offset + len(text)

    token = state.push("tr_open", "tr", 1)
    token.map = [line, line + 1]
    token.meta = {"position": _position(state, (line, offset), (line, line_end))}

    cells = split_row(text, offset)
    for index, cell in enumerate(cells):
        # A cell runs from its leading pipe up to the next one; the last
        # cell also takes the trailing pipe.
        cell_start = cell.start - 1 if cell.start > offset else cell.start
        cell_end = cell.end + 1 if index == len(cells) - 1 and cell.end < line_end else cell.end
        token = state.push(f"{cell_tag}_open", cell_tag, 1)
        token.map = [line, line + 1]
        token.meta = {"position": _position(state, (line, cell_start), (line, cell_end))}

        kind = marker_type(cell)
        if kind is None:
            token = state.push("inline", "", 0)
            token.map = [line, line + 1]
            token.content = cell.text
            token.meta = {"offset": cell.content_start}
            token.children = []
        else:
            token = state.push(kind, "", 0)
            token.markup = cell.text
            marker_end = cell.content_start + len(cell.text)
            token.meta = {
                "position": _position(state, (line, cell.content_start), (line, marker_end)),
            }

        state.push(f"{cell_tag}_close", cell_tag, -1)

    state.push("tr_close", "tr", -1)


def _push_body(state: StateBlock, first: int, end_line: int, terminators: list[Any]) -> int:
    """Emit body rows starting at *first*; return the line after the table."""
    line = first
    while line < end_line:
        if _ends_table(state, line, end_line, terminators):
            break
        line += 1
    if line == first:
        return line

    token = state.push("tbody_open", "tbody", 1)
    token.map = [first, line]
    last_text, last_offset = _line_text(state, line - 1)
    token.meta = {
        "position": _position(
            state,
            (first, state.bMarks[first] + state.tShift[first]),
            (line - 1, last_offset + len(last_text)),
        )
    }
    for body_line in range(first, line):
        _push_row(state, body_line, "td")
    state.push("tbody_close", "tbody", -1)
    return line


def span_table(state: StateBlock, start_line: int, end_line: int, silent: bool) -> bool:
    """Block rule recognising a regular or headless span table at *start_line*."""
    if start_line + 2 > end_line:
        return False
    if state.sCount[start_line] < state.blkIndent or _is_code_indented(state, start_line):
        return False

    next_line = start_line + 1
    header_text, header_offset = _line_text(state, start_line)
    headless = False
    aligns = None

    if state.sCount[next_line] >= state.blkIndent and not _is_code_indented(state, next_line):
        aligns = parse_delimiter_row(_line_text(state, next_line)[0])
    if aligns is not None and "|" in header_text:
        if len(split_row(header_text)) != len(aligns):
            aligns = None
    else:
        aligns = None

    terminators = state.md.block.ruler.getRules("blockquote")

    if aligns is None:
        # A headless table never interrupts a paragraph.
        if silent or not header_text.startswith("|"):
            return False
        aligns = parse_delimiter_row(header_text)
        if aligns is None:
            return False
        body_text = _line_text(state, next_line)[0]
        if "|" not in body_text or _ends_table(state, next_line, end_line, terminators):
            return False
        headless = True

    if silent:
        return True

    old_parent_type = state.parentType
    state.parentType = "table"

    table_open = state.push("table_open", "table", 1)
    table_open.map = table_lines = [start_line, 0]

    if headless:
        line = _push_body(state, next_line, end_line, terminators)
    else:
        # The head section includes the delimiter row.
        delimiter_text, delimiter_offset = _line_text(state, next_line)
        token = state.push("thead_open", "thead", 1)
        token.map = [start_line, start_line + 2]
        token.meta = {
            "position": _position(
                state, (start_line, header_offset), (next_line, delimiter_offset + len(delimiter_text))
            )
        }
        _push_row(state, start_line, "th")
        state.push("thead_close", "thead", -1)
        line = _push_body(state, start_line + 2, end_line, terminators)

    state.push("table_close", "table", -1)

    last_text, last_offset = _line_text(state, line - 1)
    table_open.meta = {
        "align": aligns,
        "position": _position(
            state, (start_line, header_offset), (line - 1, last_offset + len(last_text))
        ),
    }
    table_lines[1] = line
    state.parentType = old_parent_type
    state.line = line
    return True


# ---------------------------------------------------------------------------
# Plugin
# ---------------------------------------------------------------------------


def _render_marker(self: Any, tokens: list[Any], idx: int, options: Any, env: Any) -> str:
    return escapeHtml(tokens[idx].markup)


def span_table_plugin(md: MarkdownIt) -> None:
    """Replace the built-in table rule of *md* with the span table rule."""
    md.block.ruler.before("table", "span_table", span_table, {"alt": ["paragraph", "reference"]})
    md.disable("table", True)
    for name in (COLSPAN_LEFT, COLSPAN_RIGHT, ROWSPAN):
        md.add_render_rule(name, _render_marker)
