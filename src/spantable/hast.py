"""Projection of the syntax tree onto renderable elements, and HTML output.

Every node maps to an :class:`Element` (or text, raw HTML, or a root) with
one function per node type.  Table containers put newline text around and
between their children so the HTML reads one element per line; table cells
copy their ``properties`` bag (``align``, ``colspan``, ``rowspan``) into
the element's attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from spantable.types import Position


@dataclass
class Element:
    tag_name: str
    properties: dict[str, Any] = field(default_factory=dict)
    children: list[HastNode] = field(default_factory=list)
    position: Position | None = None


@dataclass
class HastText:
    value: str
    position: Position | None = None


@dataclass
class Raw:
    """HTML written to the output as is."""

    value: str
    position: Position | None = None


@dataclass
class HastRoot:
    children: list[HastNode] = field(default_factory=list)
    position: Position | None = None


HastNode = Union[Element, HastText, Raw, HastRoot]

_VOID_ELEMENTS = frozenset({"br", "hr", "img"})


# ---------------------------------------------------------------------------
# Tree projection
# ---------------------------------------------------------------------------


def _all(node: Any) -> list[HastNode]:
    result: list[HastNode] = []
    for child in node.children:
        projected = to_hast(child)
        if isinstance(projected, list):
            result.extend(projected)
        else:
            result.append(projected)
    return result


def _wrap(children: list[HastNode], loose: bool = False) -> list[HastNode]:
    """Put newline text between *children*, and around them when *loose*."""
    result: list[HastNode] = [HastText("\n")] if loose else []
    for index, child in enumerate(children):
        if index:
            result.append(HastText("\n"))
        result.append(child)
    if loose and children:
        result.append(HastText("\n"))
    return result


def _element(tag_name: str, node: Any, children: list[HastNode] | None = None, **properties: Any) -> Element:
    return Element(
        tag_name=tag_name,
        properties={key: value for key, value in properties.items() if value is not None},
        children=children if children is not None else [],
        position=node.position,
    )


def _table_container(node: Any) -> Element:
    element = _element(node.tag_name, node, _wrap(_all(node), loose=True))
    element.properties.update(node.properties)
    return element


def _table_row(node: Any, columns: int) -> Element:
    # Cells past the table's column count stay in the tree but not in HTML.
    cells = [to_hast(cell) for cell in node.children[:columns]]
    element = _element(node.tag_name, node, _wrap(cells, loose=True))
    element.properties.update(node.properties)
    return element


def _table(node: Any) -> Element:
    if not node.align:
        return _table_container(node)
    columns = len(node.align)
    children: list[HastNode] = []
    for child in node.children:
        if child.type == "table_row":
            children.append(_table_row(child, columns))
            continue
        rows: list[HastNode] = [_table_row(row, columns) for row in child.children]
        section = _element(child.tag_name, child, _wrap(rows, loose=True))
        section.properties.update(child.properties)
        children.append(section)
    element = _element(node.tag_name, node, _wrap(children, loose=True))
    element.properties.update(node.properties)
    return element


def _table_cell(node: Any) -> Element:
    element = _element(node.tag_name, node, _all(node))
    element.properties.update(node.properties)
    return element


def _code(node: Any) -> Element:
    value = node.value + "\n" if node.value else ""
    class_name = [f"language-{node.lang}"] if node.lang else None
    code = Element("code", {"class": class_name} if class_name else {}, [HastText(value)])
    return _element("pre", node, [code])


def _break(node: Any) -> list[HastNode]:
    return [_element("br", node), HastText("\n")]


_HANDLERS: dict[str, Callable[[Any], Any]] = {
    "root": lambda node: HastRoot(_wrap(_all(node)), node.position),
    "paragraph": lambda node: _element("p", node, _all(node)),
    "heading": lambda node: _element(f"h{node.depth}", node, _all(node)),
    "code": _code,
    "thematic_break": lambda node: _element("hr", node),
    "html": lambda node: Raw(node.value, node.position),
    "text": lambda node: HastText(node.value, node.position),
    "emphasis": lambda node: _element("em", node, _all(node)),
    "strong": lambda node: _element("strong", node, _all(node)),
    "delete": lambda node: _element("del", node, _all(node)),
    "inline_code": lambda node: _element("code", node, [HastText(node.value)]),
    "link": lambda node: _element("a", node, _all(node), href=node.url, title=node.title),
    "image": lambda node: _element("img", node, src=node.url, alt=node.alt, title=node.title),
    "break": _break,
    "table": _table,
    "table_head": _table_container,
    "table_body": _table_container,
    "table_row": _table_container,
    "table_cell": _table_cell,
    "table_colspan_left": lambda node: HastText("", node.position),
    "table_colspan_right": lambda node: HastText(">", node.position),
    "table_rowspan": lambda node: HastText("^", node.position),
}


def to_hast(node: Any) -> Any:
    """Project a syntax tree node onto hast nodes.

    Returns an :class:`Element` for element-like nodes, a :class:`HastRoot`
    for :class:`~spantable.types.Root`, and text or raw nodes for text and
    HTML.  A hard break projects to a ``br`` element followed by a newline,
    returned as a list.

    Raises:
        ValueError: For node types without a projection.
    """
    handler = _HANDLERS.get(getattr(node, "type", None))
    if handler is None:
        raise ValueError(f"Cannot project unknown node `{getattr(node, 'type', None)}`")
    return handler(node)


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


def _escape_text(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;")


def _escape_attribute(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;")


def _attributes(properties: dict[str, Any]) -> str:
    parts = []
    for name, value in properties.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}")
            continue
        if isinstance(value, (list, tuple)):
            value = " ".join(str(item) for item in value)
        parts.append(f' {name}="{_escape_attribute(str(value))}"')
    return "".join(parts)


def to_html(tree: Any) -> str:
    """Render hast nodes (as returned by :func:`to_hast`) to HTML."""
    if isinstance(tree, list):
        return "".join(to_html(node) for node in tree)
    if isinstance(tree, HastText):
        return _escape_text(tree.value)
    if isinstance(tree, Raw):
        return tree.value
    if isinstance(tree, HastRoot):
        return "".join(to_html(child) for child in tree.children)
    if isinstance(tree, Element):
        attributes = _attributes(tree.properties)
        if tree.tag_name in _VOID_ELEMENTS:
            return f"<{tree.tag_name}{attributes} />"
        content = "".join(to_html(child) for child in tree.children)
        return f"<{tree.tag_name}{attributes}>{content}</{tree.tag_name}>"
    raise ValueError(f"Cannot render {type(tree).__name__} as HTML")
