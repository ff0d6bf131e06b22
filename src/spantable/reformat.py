"""Re-align the tables of a markdown document in place.

Only the lines of top-level tables are rewritten; everything else in the
document is kept byte for byte.  Tables are serialized from their raw grid
(rows padded, span markers left unresolved) so ``>`` and ``^`` cells come
back as written.
"""

from __future__ import annotations

import logging
from typing import Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from spantable.builder import TableTreeBuilder
from spantable.config import Options
from spantable.normalize import normalize_rows
from spantable.parse import normalize_newlines, tokenize
from spantable.serialize import MarkdownSerializer
from spantable.types import Table, TableColspanLeft

logger = logging.getLogger(__name__)


def _find_matching_close(tokens: Sequence[Token], start: int, open_type: str, close_type: str) -> int:
    depth = 0
    for index in range(start, len(tokens)):
        if tokens[index].type == open_type:
            depth += 1
        elif tokens[index].type == close_type:
            depth -= 1
            if depth == 0:
                return index
    return len(tokens) - 1


def _has_colspan_left(table: Table) -> bool:
    for section in table.children:
        for row in section.children:
            for cell in row.children:
                if any(isinstance(child, TableColspanLeft) for child in cell.children):
                    return True
    return False


def format_tables(text: str, options: Options | None = None, *, md: MarkdownIt | None = None) -> str:
    """Return *text* with every top-level table laid out again.

    Tables nested in lists or block quotes, and tables that use ``||``
    cells, are left as they are: the first would lose their container
    markers and the second would have their merge cells written as blank
    cells.  Line endings are normalized to ``\\n``.
    """
    text = normalize_newlines(text)
    tokens = tokenize(text, md)
    serializer = MarkdownSerializer(options)
    lines = text.split("\n")

    replacements: list[tuple[int, int, list[str]]] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.type != "table_open":
            index += 1
            continue
        close = _find_matching_close(tokens, index, "table_open", "table_close")
        if token.level != 0:
            logger.debug("Leaving nested table at line %d", token.map[0] + 1)
            index = close + 1
            continue

        table = TableTreeBuilder(positions=False).build(tokens[index : close + 1]).children[0]
        if _has_colspan_left(table):
            logger.info("Leaving table at line %d: it has `||` cells", token.map[0] + 1)
        else:
            normalize_rows(table)
            start, end = token.map
            replacements.append((start, end, serializer.handle(table).split("\n")))
        index = close + 1

    # Later tables first so earlier line numbers stay valid.
    for start, end, table_lines in reversed(replacements):
        lines[start:end] = table_lines
    logger.debug("Formatted %d table(s)", len(replacements))
    return "\n".join(lines)
