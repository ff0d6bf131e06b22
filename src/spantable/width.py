"""Column width measurement for aligned table text.

Provides the two string-length measures a serializer can lay columns out
with, and the per-column width calculation shared by the table layout
engine.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, Sequence

import grapheme
import wcwidth as _wcwidth

StringLength = Callable[[str], int]


def string_length(value: str) -> int:
    """Default measure: number of code points."""
    return len(value)


# ---------------------------------------------------------------------------
# Display width
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-9;]*[mGKHJ]"  # CSI
    r"|\x1b\]8;;[^\x07]*\x07"  # OSC 8
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"  # APC
)

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


def _grapheme_width(g: str) -> int:
    """Terminal columns taken by one grapheme cluster (0, 1 or 2)."""
    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tone modifiers, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000 or 0x2600 <= ord(first) <= 0x27BF:
        return 2
    if unicodedata.category(first)[0] == "M" or unicodedata.category(first) == "Cf":
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def display_width(value: str) -> int:
    """Terminal display width of *value*.

    ANSI escape sequences are ignored, wide CJK characters and emoji count as
    two columns, combining marks as zero.
    """
    if not value:
        return 0
    stripped = _STRIP_RE.sub("", value)
    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _cache_width(stripped, total)


# ---------------------------------------------------------------------------
# Column widths
# ---------------------------------------------------------------------------


def to_alignment(value: str | None) -> str:
    """Reduce an alignment token to ``"l"``, ``"r"``, ``"c"`` or ``""``.

    Accepts ``left``/``right``/``center``/``none`` as well as the one-letter
    shorthands, case-insensitively.  Anything else means unaligned.
    """
    if not value:
        return ""
    code = value[0].lower()
    return code if code in ("l", "r", "c") else ""


def delimiter_width(code: str) -> int:
    """Minimum width of a delimiter-row cell: ``:-:`` is 3, ``:-``/``-:`` is 2, ``-`` is 1."""
    if code == "c":
        return 3
    if code in ("l", "r"):
        return 2
    return 1


@dataclass
class ColumnWidths:
    """Per-column widths of a cell matrix.

    ``content`` is the widest cell per column, ``delimiter`` the minimum width
    its delimiter-row cell needs and ``sizes`` the larger of the two.
    """

    content: list[int] = field(default_factory=list)
    delimiter: list[int] = field(default_factory=list)

    @property
    def sizes(self) -> list[int]:
        return [max(c, d) for c, d in zip(self.content, self.delimiter)]


def column_widths(
    rows: Sequence[Sequence[str]],
    align: Sequence[str] | None = None,
    measure: StringLength | None = None,
) -> ColumnWidths:
    """Compute :class:`ColumnWidths` for *rows*.

    Rows may have differing lengths; a column only considers rows that have
    a cell at its index.  *align* holds one alignment code per column (see
    :func:`to_alignment`); missing entries count as unaligned.
    """
    measure = measure or string_length
    content: list[int] = []
    for row in rows:
        for index, cell in enumerate(row):
            size = measure(cell)
            if index == len(content):
                content.append(size)
            elif size > content[index]:
                content[index] = size

    align = align or []
    delimiter = [delimiter_width(align[i] if i < len(align) else "") for i in range(len(content))]
    return ColumnWidths(content=content, delimiter=delimiter)
