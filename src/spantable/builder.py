"""Assemble a syntax tree from a markdown-it token stream.

The builder keeps a stack of open nodes.  Block tokens with ``nesting == 1``
push, tokens with ``nesting == -1`` pop and leaf tokens are appended to the
node on top.  Two flags scoped to the builder instance decide how table
content is read: code spans inside a table get their escaped pipes
restored, and span marker tokens are only honoured inside a table section.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Sequence

from markdown_it.token import Token

from spantable.escape import unescape_code_pipes
from spantable.syntax import COLSPAN_LEFT, COLSPAN_RIGHT, ROWSPAN
from spantable.types import (
    Break,
    Code,
    Delete,
    Emphasis,
    Heading,
    Html,
    Image,
    InlineCode,
    Link,
    Paragraph,
    Position,
    Root,
    Strong,
    Table,
    TableCell,
    TableColspanLeft,
    TableColspanRight,
    TableRow,
    TableRowspan,
    TableSection,
    Text,
    ThematicBreak,
    to_align_type,
)

logger = logging.getLogger(__name__)

_MARKERS = {
    COLSPAN_LEFT: TableColspanLeft,
    COLSPAN_RIGHT: TableColspanRight,
    ROWSPAN: TableRowspan,
}

# Containers whose content is lifted into the parent.
_FLATTENED = frozenset(
    {
        "blockquote_open",
        "blockquote_close",
        "bullet_list_open",
        "bullet_list_close",
        "ordered_list_open",
        "ordered_list_close",
        "list_item_open",
        "list_item_close",
    }
)


@dataclass
class _BuildContext:
    in_table: bool = False
    in_table_cell: bool = False


class _LineIndex:
    """Maps markdown-it line maps and source offsets to positions."""

    def __init__(self, src: str) -> None:
        self.src = src
        self._starts = [0]
        for index, char in enumerate(src):
            if char == "\n":
                self._starts.append(index + 1)
        self._length = len(src)

    def document(self) -> Position | None:
        return self.position([0, len(self._starts)])

    def point(self, offset: int) -> dict[str, int]:
        line = bisect_right(self._starts, offset) - 1
        return {"line": line + 1, "column": offset - self._starts[line] + 1, "offset": offset}

    def span(self, line_map: Sequence[int]) -> tuple[int, int]:
        """Source offsets covered by the lines of *line_map*."""
        first, last = line_map
        start = self._starts[first] if first < len(self._starts) else self._length
        end = self._starts[last] if last < len(self._starts) else self._length
        return start, end

    def offsets(self, start: int, end: int) -> Position:
        return Position.model_validate({"start": self.point(start), "end": self.point(end)})

    def position(self, line_map: Sequence[int] | None) -> Position | None:
        if not line_map:
            return None
        first, last = line_map
        last = max(last - 1, first)
        start = self._starts[first] if first < len(self._starts) else self._length
        if last + 1 < len(self._starts):
            end = self._starts[last + 1] - 1
        else:
            end = self._length
        end_line_start = self._starts[last] if last < len(self._starts) else self._length
        return Position.model_validate(
            {
                "start": {"line": first + 1, "column": 1, "offset": start},
                "end": {"line": last + 1, "column": end - end_line_start + 1, "offset": end},
            }
        )


class _InlineSource:
    """Finds the source of phrasing values, in order, inside one inline token.

    A value that is not found verbatim (escapes, entities) gets no position.
    """

    def __init__(self, lines: _LineIndex, start: int, end: int) -> None:
        self._lines = lines
        self._cursor = start
        self._end = end

    def find(self, value: str) -> Position | None:
        found = self._lines.src.find(value, self._cursor, self._end) if value else -1
        if found < 0:
            return None
        self._cursor = found + len(value)
        return self._lines.offsets(found, self._cursor)

    def find_code(self, markup: str) -> Position | None:
        src = self._lines.src
        start = src.find(markup, self._cursor, self._end) if markup else -1
        if start < 0:
            return None
        close = src.find(markup, start + len(markup), self._end)
        if close < 0:
            return None
        self._cursor = close + len(markup)
        return self._lines.offsets(start, self._cursor)


class TableTreeBuilder:
    """Build a :class:`Root` from the tokens of one parse.

    Args:
        src: The source the tokens were produced from; used to turn line maps
            into positions.
        positions: Attach source positions to the nodes.
    """

    def __init__(self, src: str = "", *, positions: bool = True) -> None:
        self._positions = positions
        self._lines = _LineIndex(src) if positions else None
        self._stack: list[Any] = []
        self._context = _BuildContext()

    # -- entry point ------------------------------------------------------

    def build(self, tokens: Sequence[Token]) -> Root:
        root = Root()
        if self._lines is not None:
            root.position = self._lines.document()
        self._stack = [root]
        self._context = _BuildContext()

        for token in tokens:
            self._handle(token)

        if len(self._stack) != 1:
            raise ValueError(f"Unclosed {self._stack[-1].type} node at end of token stream")
        return root

    # -- dispatch ---------------------------------------------------------

    def _handle(self, token: Token) -> None:
        t = token.type

        if t in _FLATTENED:
            logger.debug("Flattening %s", t)
            return

        if t == "table_open":
            self._enter_table(token)
            return
        if t == "table_close":
            self._exit("table", token)
            self._context.in_table = False
            return
        if t in ("thead_open", "tbody_open"):
            section_type = "table_head" if t == "thead_open" else "table_body"
            self._enter(TableSection(type=section_type, position=self._table_position(token)))
            self._context.in_table_cell = True
            return
        if t in ("thead_close", "tbody_close"):
            self._exit("table_head" if t == "thead_close" else "table_body", token)
            self._context.in_table_cell = False
            return
        if t == "tr_open":
            self._enter(TableRow(position=self._table_position(token)))
            return
        if t in ("th_open", "td_open"):
            kind = "header" if t == "th_open" else "data"
            self._enter(TableCell(kind=kind, position=self._table_position(token)))
            return
        if t in ("tr_close", "th_close", "td_close"):
            self._exit("table_row" if t == "tr_close" else "table_cell", token)
            return
        if t in _MARKERS:
            self._marker(token)
            return

        if t == "paragraph_open":
            self._enter(Paragraph(position=self._block_position(token)))
            return
        if t == "paragraph_close":
            self._exit("paragraph", token)
            return
        if t == "heading_open":
            depth = int(token.tag[1]) if token.tag and token.tag[0] == "h" else 1
            self._enter(Heading(depth=depth, position=self._block_position(token)))
            return
        if t == "heading_close":
            self._exit("heading", token)
            return
        if t == "inline":
            self._stack[-1].children.extend(self._inline(token.children or [], self._inline_source(token)))
            return

        if t in ("fence", "code_block"):
            lang = token.info.strip().split()[0] if token.info and token.info.strip() else None
            value = token.content[:-1] if token.content.endswith("\n") else token.content
            self._append(Code(lang=lang, value=value, position=self._block_position(token)))
            return
        if t == "hr":
            self._append(ThematicBreak(position=self._block_position(token)))
            return
        if t == "html_block":
            value = token.content.rstrip("\n")
            self._append(Html(value=value, position=self._block_position(token)))
            return

        logger.debug("Skipping unsupported token %s", t)

    # -- stack helpers ----------------------------------------------------

    def _enter(self, node: Any) -> None:
        self._stack[-1].children.append(node)
        self._stack.append(node)

    def _append(self, node: Any) -> None:
        self._stack[-1].children.append(node)

    def _exit(self, node_type: str, token: Token) -> None:
        node = self._stack[-1] if len(self._stack) > 1 else None
        if node is None or node.type != node_type:
            found = node.type if node is not None else "nothing"
            raise ValueError(f"Cannot close {node_type} with {token.type}: {found} is open")
        self._stack.pop()

    def _block_position(self, token: Token) -> Position | None:
        if self._lines is None:
            return None
        return self._lines.position(token.map)

    def _table_position(self, token: Token) -> Position | None:
        if not self._positions:
            return None
        meta = token.meta or {}
        if "position" in meta:
            return Position.model_validate(meta["position"])
        return self._block_position(token)

    # -- tables -----------------------------------------------------------

    def _enter_table(self, token: Token) -> None:
        meta = token.meta or {}
        align = meta.get("align")
        if align is None:
            raise ValueError("Expected `align` in meta of table_open token")
        table = Table(align=[to_align_type(value) for value in align], position=self._table_position(token))
        self._enter(table)
        self._context.in_table = True

    def _marker(self, token: Token) -> None:
        if not self._context.in_table_cell or not isinstance(self._stack[-1], TableCell):
            logger.debug("Ignoring %s outside a table cell", token.type)
            return
        self._append(_MARKERS[token.type](position=self._table_position(token)))

    # -- inline content ---------------------------------------------------

    def _inline_source(self, token: Token) -> _InlineSource | None:
        if self._lines is None:
            return None
        meta = token.meta or {}
        if "offset" in meta:
            start = meta["offset"]
            return _InlineSource(self._lines, start, start + len(token.content))
        if token.map:
            return _InlineSource(self._lines, *self._lines.span(token.map))
        return None

    def _inline(self, tokens: Sequence[Token], source: _InlineSource | None = None) -> list[Any]:
        """Convert the children of an ``inline`` token into phrasing nodes."""
        result: list[Any] = []
        stack: list[list[Any]] = [result]

        def locate(value: str) -> Position | None:
            return source.find(value) if source is not None else None

        def add(node: Any) -> None:
            siblings = stack[-1]
            if isinstance(node, Text) and siblings and isinstance(siblings[-1], Text):
                previous = siblings[-1]
                previous.value += node.value
                if previous.position is not None and node.position is not None:
                    previous.position = Position(start=previous.position.start, end=node.position.end)
                else:
                    previous.position = None
                return
            siblings.append(node)

        def open_(node: Any) -> None:
            stack[-1].append(node)
            stack.append(node.children)

        for child in tokens:
            ct = child.type

            if ct == "text":
                # markdown-it leaves empty text tokens around delimiters
                if child.content:
                    add(Text(value=child.content, position=locate(child.content)))
            elif ct == "softbreak":
                add(Text(value="\n", position=locate("\n")))
            elif ct == "hardbreak":
                add(Break())
            elif ct == "code_inline":
                value = child.content
                if self._context.in_table:
                    value = unescape_code_pipes(value)
                position = source.find_code(child.markup) if source is not None else None
                add(InlineCode(value=value, position=position))
            elif ct == "em_open":
                open_(Emphasis())
            elif ct == "strong_open":
                open_(Strong())
            elif ct == "s_open":
                open_(Delete())
            elif ct == "link_open":
                href = child.attrs.get("href", "")
                title = child.attrs.get("title")
                open_(Link(url=str(href), title=str(title) if title else None))
            elif ct in ("em_close", "strong_close", "s_close", "link_close"):
                if len(stack) > 1:
                    stack.pop()
            elif ct == "image":
                src = child.attrs.get("src", "")
                title = child.attrs.get("title")
                add(Image(url=str(src), alt=child.content or "", title=str(title) if title else None))
            elif ct == "html_inline":
                add(Html(value=child.content, position=locate(child.content)))
            else:
                logger.debug("Skipping unsupported inline token %s", ct)
                if child.content:
                    add(Text(value=child.content, position=locate(child.content)))

        return result
