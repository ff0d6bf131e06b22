"""Syntax tree models for markdown documents containing span tables.

All nodes are Pydantic models so a tree can be validated, compared by value
and dumped to JSON.  Every node carries a ``type`` discriminator in
snake_case and an optional source ``position``.

Table nodes additionally expose ``tag_name`` (the element a renderer should
create) and a ``properties`` bag holding ``align``, ``colspan`` and
``rowspan`` once span markers have been resolved.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

AlignType = Literal["left", "right", "center"] | None

Align = Literal["left", "right", "center", "none"]

CellKind = Literal["data", "header"]

_ALIGN_VALUES = ("left", "right", "center")


def to_align_type(value: str | None) -> AlignType:
    """Map an alignment token to an ``AlignType``; ``none`` and unknown tokens become ``None``."""
    if value in _ALIGN_VALUES:
        return value  # type: ignore[return-value]
    return None


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


class Point(BaseModel):
    line: int
    column: int
    offset: int | None = None


class Position(BaseModel):
    start: Point
    end: Point


class Node(BaseModel):
    position: Position | None = None


# ---------------------------------------------------------------------------
# Phrasing content
# ---------------------------------------------------------------------------


class Text(Node):
    type: Literal["text"] = "text"
    value: str


class InlineCode(Node):
    type: Literal["inline_code"] = "inline_code"
    value: str


class Html(Node):
    type: Literal["html"] = "html"
    value: str


class Break(Node):
    type: Literal["break"] = "break"


class Image(Node):
    type: Literal["image"] = "image"
    url: str
    title: str | None = None
    alt: str = ""


class Emphasis(Node):
    type: Literal["emphasis"] = "emphasis"
    children: list[PhrasingContent] = Field(default_factory=list)


class Strong(Node):
    type: Literal["strong"] = "strong"
    children: list[PhrasingContent] = Field(default_factory=list)


class Delete(Node):
    type: Literal["delete"] = "delete"
    children: list[PhrasingContent] = Field(default_factory=list)


class Link(Node):
    type: Literal["link"] = "link"
    url: str
    title: str | None = None
    children: list[PhrasingContent] = Field(default_factory=list)


PhrasingContent = Annotated[
    Union[Text, InlineCode, Html, Break, Image, Emphasis, Strong, Delete, Link],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Span markers (only present before resolution)
# ---------------------------------------------------------------------------


class TableColspanLeft(Node):
    type: Literal["table_colspan_left"] = "table_colspan_left"


class TableColspanRight(Node):
    type: Literal["table_colspan_right"] = "table_colspan_right"


class TableRowspan(Node):
    type: Literal["table_rowspan"] = "table_rowspan"


MARKER_TYPES = frozenset({"table_colspan_left", "table_colspan_right", "table_rowspan"})

CellContent = Annotated[
    Union[
        Text,
        InlineCode,
        Html,
        Break,
        Image,
        Emphasis,
        Strong,
        Delete,
        Link,
        TableColspanLeft,
        TableColspanRight,
        TableRowspan,
    ],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Table structure
# ---------------------------------------------------------------------------


class TableCell(Node):
    type: Literal["table_cell"] = "table_cell"
    kind: CellKind = "data"
    children: list[CellContent] = Field(default_factory=list)
    colspan: int | None = None
    rowspan: int | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def tag_name(self) -> str:
        return "th" if self.kind == "header" else "td"


class TableRow(Node):
    type: Literal["table_row"] = "table_row"
    children: list[TableCell] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def tag_name(self) -> str:
        return "tr"


class TableSection(Node):
    """A ``table_head`` (at most one, always first) or ``table_body`` group of rows."""

    type: Literal["table_head", "table_body"] = "table_body"
    children: list[TableRow] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_head(self) -> bool:
        return self.type == "table_head"

    @property
    def tag_name(self) -> str:
        return "thead" if self.is_head else "tbody"


class Table(Node):
    """A table; ``align`` has one entry per declared column.

    Children are normally sections.  Rows placed directly under the table are
    accepted by the serializer (the first row is written as the header row)
    but are left alone by normalization and span resolution.
    """

    type: Literal["table"] = "table"
    align: list[AlignType] = Field(default_factory=list)
    children: list[Union[TableSection, TableRow]] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def tag_name(self) -> str:
        return "table"


# ---------------------------------------------------------------------------
# Flow content
# ---------------------------------------------------------------------------


class Paragraph(Node):
    type: Literal["paragraph"] = "paragraph"
    children: list[PhrasingContent] = Field(default_factory=list)


class Heading(Node):
    type: Literal["heading"] = "heading"
    depth: int = 1
    children: list[PhrasingContent] = Field(default_factory=list)


class Code(Node):
    type: Literal["code"] = "code"
    lang: str | None = None
    value: str = ""


class ThematicBreak(Node):
    type: Literal["thematic_break"] = "thematic_break"


FlowContent = Annotated[
    Union[Paragraph, Heading, Code, ThematicBreak, Html, Table],
    Field(discriminator="type"),
]


class Root(Node):
    type: Literal["root"] = "root"
    children: list[FlowContent] = Field(default_factory=list)


for _model in (Emphasis, Strong, Delete, Link, TableCell, Paragraph, Heading, Root):
    _model.model_rebuild()
del _model
