"""Markdown text to syntax tree."""

from __future__ import annotations

import logging

from markdown_it import MarkdownIt
from markdown_it.token import Token

from spantable.builder import TableTreeBuilder
from spantable.normalize import normalize_rows
from spantable.spans import resolve_span_markers
from spantable.syntax import span_table_plugin
from spantable.types import Root, Table

logger = logging.getLogger(__name__)


def create_parser() -> MarkdownIt:
    """CommonMark parser with strikethrough and span tables."""
    return MarkdownIt("commonmark").enable("strikethrough").use(span_table_plugin)


# ---------------------------------------------------------------------------
# markdown-it singleton
# ---------------------------------------------------------------------------

_md_parser = create_parser()


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def tokenize(text: str, md: MarkdownIt | None = None) -> list[Token]:
    """Token stream of *text* from *md*, or from the shared parser."""
    return (md or _md_parser).parse(text)


def transform_tables(root: Root) -> Root:
    """Normalize row shapes, then resolve span markers, for every table in *root*."""
    count = 0
    for node in root.children:
        if isinstance(node, Table):
            normalize_rows(node)
            resolve_span_markers(node)
            count += 1
    logger.debug("Transformed %d table(s)", count)
    return root


def from_markdown(text: str, *, positions: bool = True, md: MarkdownIt | None = None) -> Root:
    """Parse *text* into a :class:`Root` with resolved tables.

    Args:
        text: Markdown source.  Line endings are normalized to ``\\n`` before
            parsing, so offsets refer to the normalized text.
        positions: Attach source positions to the nodes.
        md: Parser to use instead of the shared one; it must have
            :func:`~spantable.syntax.span_table_plugin` applied.
    """
    text = normalize_newlines(text)
    root = TableTreeBuilder(text, positions=positions).build(tokenize(text, md))
    return transform_tables(root)
