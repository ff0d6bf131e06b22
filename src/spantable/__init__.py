"""spantable: markdown tables with column and row spans."""

from spantable.builder import TableTreeBuilder
from spantable.config import Options
from spantable.escape import (
    TABLE_UNSAFE,
    UnsafePattern,
    escape_cell_text,
    escape_code_pipes,
    escape_line_start,
    safe,
    unescape_code_pipes,
)
from spantable.hast import Element, HastRoot, HastText, Raw, to_hast, to_html
from spantable.markdown_table import markdown_table
from spantable.normalize import normalize_rows
from spantable.parse import create_parser, from_markdown, transform_tables
from spantable.reformat import format_tables
from spantable.serialize import MarkdownSerializer, to_markdown
from spantable.spans import resolve_span_markers
from spantable.syntax import span_table_plugin
from spantable.types import (
    AlignType,
    Root,
    Table,
    TableCell,
    TableColspanLeft,
    TableColspanRight,
    TableRow,
    TableRowspan,
    TableSection,
    to_align_type,
)
from spantable.width import ColumnWidths, column_widths, display_width, string_length

__all__ = [
    # Tree
    "AlignType",
    "Root",
    "Table",
    "TableCell",
    "TableColspanLeft",
    "TableColspanRight",
    "TableRow",
    "TableRowspan",
    "TableSection",
    "to_align_type",
    # Parsing
    "TableTreeBuilder",
    "create_parser",
    "from_markdown",
    "normalize_rows",
    "resolve_span_markers",
    "span_table_plugin",
    "transform_tables",
    # Serializing
    "ColumnWidths",
    "MarkdownSerializer",
    "Options",
    "TABLE_UNSAFE",
    "UnsafePattern",
    "column_widths",
    "display_width",
    "escape_cell_text",
    "escape_code_pipes",
    "escape_line_start",
    "format_tables",
    "markdown_table",
    "safe",
    "string_length",
    "to_markdown",
    "unescape_code_pipes",
    # Elements
    "Element",
    "HastRoot",
    "HastText",
    "Raw",
    "to_hast",
    "to_html",
]
