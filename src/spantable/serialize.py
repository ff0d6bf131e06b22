"""Syntax tree to markdown text.

:class:`MarkdownSerializer` walks a tree with one handler per node type.
While it descends it keeps a stack of the constructs it is inside
(``paragraph``, ``phrasing``, ``table``, ``tableRow``, ``tableCell``, ...)
so that text escaping can depend on where the text ends up.  Each handler
also receives the characters that will be written directly *before* and
*after* its output, which decides escapes at line starts and next to other
markup.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from spantable.config import Options
from spantable.escape import (
    DEFAULT_UNSAFE,
    UnsafePattern,
    character_reference,
    compile_pattern,
    escape_code_pipes,
    safe,
)
from spantable.markdown_table import markdown_table
from spantable.types import Table, TableRow, TableSection

Handler = Callable[[Any, str, str], str]

_PEEK = {
    "emphasis": "*",
    "strong": "*",
    "delete": "~",
    "inline_code": "`",
    "link": "[",
    "image": "!",
    "html": "<",
}

_MARKER_TEXT = {
    "table_colspan_left": "",
    "table_colspan_right": ">",
    "table_rowspan": "^",
}

_LINE_ENDING_RE = re.compile(r"\r\n|\r|\n")
_DESTINATION_LITERAL_RE = re.compile(r"[\x00- \x7f]")


class MarkdownSerializer:
    """Serializes nodes of one tree; create one per call, the construct stack is per instance."""

    def __init__(self, options: Options | None = None, unsafe: tuple[UnsafePattern, ...] = DEFAULT_UNSAFE) -> None:
        self.options = options or Options()
        self.unsafe = unsafe
        self.stack: list[str] = []
        self._handlers: dict[str, Handler] = {
            "root": self._root,
            "paragraph": self._paragraph,
            "heading": self._heading,
            "code": self._code,
            "thematic_break": lambda node, before, after: "***",
            "html": lambda node, before, after: node.value,
            "text": self._text,
            "emphasis": self._emphasis,
            "strong": self._strong,
            "delete": self._delete,
            "inline_code": self._inline_code,
            "link": self._link,
            "image": self._image,
            "break": self._break,
            "table": self._table,
            "table_head": self._section,
            "table_body": self._section,
            "table_row": self._table_row,
            "table_cell": self._table_cell,
        }
        for name, literal in _MARKER_TEXT.items():
            self._handlers[name] = lambda node, before, after, literal=literal: literal

    @contextmanager
    def enter(self, name: str) -> Iterator[None]:
        self.stack.append(name)
        try:
            yield
        finally:
            self.stack.pop()

    def handle(self, node: Any, before: str = "\n", after: str = "\n") -> str:
        node_type = getattr(node, "type", None)
        handler = self._handlers.get(node_type) if isinstance(node_type, str) else None
        if handler is None:
            raise ValueError(f"Cannot handle unknown node `{node_type}`")
        return handler(node, before, after)

    def safe(self, value: str, before: str, after: str) -> str:
        return safe(value, self.stack, self.unsafe, before=before, after=after)

    # -- containers -------------------------------------------------------

    def container_phrasing(self, parent: Any, before: str, after: str) -> str:
        """Serialize the phrasing children of *parent* between *before* and *after*."""
        children = parent.children
        results: list[str] = []
        for index, child in enumerate(children):
            child_after = self._peek(children[index + 1]) if index + 1 < len(children) else after
            if results and before in ("\r", "\n") and child.type == "html":
                # Raw HTML at a line start could become an HTML block.
                results[-1] = re.sub(r"(\r?\n|\r)$", " ", results[-1])
                before = " "
            value = self.handle(child, before, child_after)
            results.append(value)
            before = value[-1:]
        return "".join(results)

    def _peek(self, node: Any) -> str:
        if node.type in _PEEK:
            return _PEEK[node.type]
        return self.handle(node, "", "")[:1]

    def _root(self, node: Any, before: str, after: str) -> str:
        return "\n\n".join(self.handle(child, "\n", "\n") for child in node.children)

    # -- flow -------------------------------------------------------------

    def _paragraph(self, node: Any, before: str, after: str) -> str:
        with self.enter("paragraph"), self.enter("phrasing"):
            return self.container_phrasing(node, before, after)

    def _heading(self, node: Any, before: str, after: str) -> str:
        depth = max(1, min(node.depth, 6))
        sequence = "#" * depth
        with self.enter("headingAtx"), self.enter("phrasing"):
            value = self.container_phrasing(node, "# ", "\n")
        if not value:
            return sequence
        if value[0] in " \t":
            value = character_reference(value[0]) + value[1:]
        return f"{sequence} {value}"

    def _code(self, node: Any, before: str, after: str) -> str:
        runs = re.findall(r"`+", node.value)
        fence = "`" * max(3, max((len(run) for run in runs), default=0) + 1)
        info = node.lang or ""
        if not node.value:
            return f"{fence}{info}\n{fence}"
        return f"{fence}{info}\n{node.value}\n{fence}"

    # -- phrasing ---------------------------------------------------------

    def _text(self, node: Any, before: str, after: str) -> str:
        return self.safe(node.value, before, after)

    def _emphasis(self, node: Any, before: str, after: str) -> str:
        with self.enter("emphasis"):
            return "*" + self.container_phrasing(node, "*", "*") + "*"

    def _strong(self, node: Any, before: str, after: str) -> str:
        with self.enter("strong"):
            return "**" + self.container_phrasing(node, "*", "*") + "**"

    def _delete(self, node: Any, before: str, after: str) -> str:
        with self.enter("strikethrough"):
            return "~~" + self.container_phrasing(node, "~", "~") + "~~"

    def _inline_code(self, node: Any, before: str, after: str) -> str:
        value = node.value
        sequence = "`"
        while re.search(f"(^|[^`]){sequence}([^`]|$)", value):
            sequence += "`"

        if re.search(r"[^ \r\n]", value) and (
            (re.match(r"[ \r\n]", value) and re.search(r"[ \r\n]$", value)) or re.search(r"^`|`$", value)
        ):
            value = f" {value} "

        # A line ending followed by something that starts a construct is
        # written as a space.
        for pattern in self.unsafe:
            if not pattern.at_break:
                continue
            expression = compile_pattern(pattern)
            match = expression.search(value)
            while match:
                position = match.start()
                if value[position] == "\n" and position > 0 and value[position - 1] == "\r":
                    position -= 1
                value = value[:position] + " " + value[match.start() + 1 :]
                match = expression.search(value)

        if "tableCell" in self.stack:
            value = _LINE_ENDING_RE.sub(" ", value)
            return escape_code_pipes(sequence + value + sequence)
        return sequence + value + sequence

    def _destination(self, url: str, title: str | None) -> str:
        if not url or _DESTINATION_LITERAL_RE.search(url):
            with self.enter("destinationLiteral"):
                value = "<" + self.safe(url, "<", ">") + ">"
        else:
            with self.enter("destinationRaw"):
                value = self.safe(url, "(", '"' if title else ")")
        if title:
            with self.enter("titleQuote"):
                value += ' "' + self.safe(title, '"', '"') + '"'
        return value

    def _link(self, node: Any, before: str, after: str) -> str:
        with self.enter("link"):
            with self.enter("label"):
                label = self.container_phrasing(node, "[", "]")
            return f"[{label}]({self._destination(node.url, node.title)})"

    def _image(self, node: Any, before: str, after: str) -> str:
        with self.enter("image"):
            with self.enter("label"):
                alt = self.safe(node.alt, "[", "]")
            return f"![{alt}]({self._destination(node.url, node.title)})"

    def _break(self, node: Any, before: str, after: str) -> str:
        for pattern in self.unsafe:
            if pattern.character == "\n" and pattern.in_scope(self.stack):
                return "" if before and before in " \t" else " "
        return "\\\n"

    # -- tables -----------------------------------------------------------

    def _table(self, node: Table, before: str, after: str) -> str:
        with self.enter("table"):
            matrix = [self._row_cells(row) for row in _table_rows(node)]
        sections = [child for child in node.children if isinstance(child, TableSection)]
        headless = bool(sections) and not any(section.is_head for section in sections)
        return self._layout(matrix, node.align, headless=headless)

    def _section(self, node: TableSection, before: str, after: str) -> str:
        with self.enter("table"):
            matrix = [self._row_cells(row) for row in node.children]
        return self._layout(matrix, None, headless=not node.is_head)

    def _table_row(self, node: TableRow, before: str, after: str) -> str:
        value = self._layout([self._row_cells(node)], None)
        # The layout always adds a delimiter row after the first line.
        return value[: value.index("\n")]

    def _table_cell(self, node: Any, before: str, after: str) -> str:
        around = " " if self.options.table_cell_padding else "|"
        with self.enter("tableCell"), self.enter("phrasing"):
            return self.container_phrasing(node, around, around)

    def _row_cells(self, row: TableRow) -> list[str]:
        with self.enter("tableRow"):
            return [self._table_cell(cell, "", "") for cell in row.children]

    def _layout(self, matrix: list[list[str]], align: Any, *, headless: bool = False) -> str:
        return markdown_table(
            matrix,
            align=align,
            align_delimiters=self.options.table_pipe_align,
            padding=self.options.table_cell_padding,
            string_length=self.options.string_length,
            headless=headless,
        )


def _table_rows(table: Table) -> Iterator[TableRow]:
    for child in table.children:
        if isinstance(child, TableRow):
            yield child
        else:
            yield from child.children


def to_markdown(node: Any, options: Options | None = None) -> str:
    """Serialize *node* (a whole tree or any node in it) to markdown.

    Raises:
        ValueError: If the tree contains a node type that cannot be
            serialized.
    """
    value = MarkdownSerializer(options).handle(node, "\n", "\n")
    if value and not value.endswith(("\n", "\r")):
        value += "\n"
    return value
