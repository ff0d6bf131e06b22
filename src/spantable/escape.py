"""Escaping of text that must survive being parsed again as markdown.

Which characters are unsafe depends on where the text ends up, so patterns
are scoped by a *construct stack* (``paragraph``, ``phrasing``,
``tableCell``, ...) that the serializer maintains while it walks a tree.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence


@dataclass(frozen=True)
class UnsafePattern:
    """A character that needs escaping in some context.

    ``in_construct`` limits the pattern to stacks containing one of the named
    constructs (empty means everywhere), ``not_in_construct`` excludes
    stacks containing any of them.  ``before``/``after`` are regular
    expressions the surrounding text must match and ``at_break`` requires
    the character to start a line (after optional indentation).
    """

    character: str
    in_construct: tuple[str, ...] = ()
    not_in_construct: tuple[str, ...] = ()
    before: str | None = None
    after: str | None = None
    at_break: bool = False

    def in_scope(self, stack: Sequence[str]) -> bool:
        if self.in_construct and not any(name in stack for name in self.in_construct):
            return False
        return not any(name in stack for name in self.not_in_construct)


@lru_cache(maxsize=None)
def compile_pattern(pattern: UnsafePattern) -> re.Pattern[str]:
    before = ("[\\r\\n][\\t ]*" if pattern.at_break else "") + (
        f"(?:{pattern.before})" if pattern.before else ""
    )
    source = (f"({before})" if before else "") + re.escape(pattern.character)
    if pattern.after:
        source += f"(?:{pattern.after})"
    return re.compile(source)


_FULL_PHRASING_SPANS = (
    "autolink",
    "destinationLiteral",
    "destinationRaw",
    "reference",
    "titleQuote",
    "titleApostrophe",
)

# Pipes, colons and dashes that could start a table, and characters a table
# cell cannot hold.
TABLE_UNSAFE: tuple[UnsafePattern, ...] = (
    UnsafePattern("\r", in_construct=("tableCell",)),
    UnsafePattern("\n", in_construct=("tableCell",)),
    UnsafePattern("|", at_break=True, after="[\t :-]"),
    UnsafePattern("|", in_construct=("tableCell",)),
    UnsafePattern(":", at_break=True, after="-"),
    UnsafePattern("-", at_break=True, after="[:|-]"),
)

PHRASING_UNSAFE: tuple[UnsafePattern, ...] = (
    UnsafePattern("\t", after="[\\r\\n]", in_construct=("phrasing",)),
    UnsafePattern("\t", before="[\\r\\n]", in_construct=("phrasing",)),
    UnsafePattern("\r", in_construct=("headingAtx", "destinationLiteral")),
    UnsafePattern("\n", in_construct=("headingAtx", "destinationLiteral")),
    UnsafePattern(" ", after="[\\r\\n]", in_construct=("phrasing",)),
    UnsafePattern(" ", before="[\\r\\n]", in_construct=("phrasing",)),
    UnsafePattern("!", after="\\[", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern('"', in_construct=("titleQuote",)),
    UnsafePattern("#", at_break=True),
    UnsafePattern("#", in_construct=("headingAtx",), after="(?:[\\r\\n]|$)"),
    UnsafePattern("&", after="[#A-Za-z]", in_construct=("phrasing",)),
    UnsafePattern("(", in_construct=("destinationRaw",)),
    UnsafePattern("(", before="\\]", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern(")", at_break=True, before="\\d+"),
    UnsafePattern(")", in_construct=("destinationRaw",)),
    UnsafePattern("*", at_break=True, after="(?:[ \\t\\r\\n*])"),
    UnsafePattern("*", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern("+", at_break=True, after="(?:[ \\t\\r\\n])"),
    UnsafePattern("-", at_break=True, after="(?:[ \\t\\r\\n-])"),
    UnsafePattern(".", at_break=True, before="\\d+", after="(?:[ \\t\\r\\n]|$)"),
    UnsafePattern("<", at_break=True, after="[!/?A-Za-z]"),
    UnsafePattern("<", after="[!/?A-Za-z]", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern("<", in_construct=("destinationLiteral",)),
    UnsafePattern("=", at_break=True),
    UnsafePattern(">", at_break=True),
    UnsafePattern(">", in_construct=("destinationLiteral",)),
    UnsafePattern("[", at_break=True),
    UnsafePattern("[", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern("[", in_construct=("label", "reference")),
    UnsafePattern("\\", after="[\\r\\n]", in_construct=("phrasing",)),
    UnsafePattern("]", in_construct=("label", "reference")),
    UnsafePattern("_", at_break=True),
    UnsafePattern("_", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern("`", at_break=True),
    UnsafePattern("`", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
    UnsafePattern("~", at_break=True),
    UnsafePattern("~", in_construct=("phrasing",), not_in_construct=_FULL_PHRASING_SPANS),
)

DEFAULT_UNSAFE: tuple[UnsafePattern, ...] = PHRASING_UNSAFE + TABLE_UNSAFE

_ASCII_PUNCTUATION_RE = re.compile(r"[!-/:-@\[-`{-~]")
_BACKSLASH_RE = re.compile(r"\\(?=[!-/:-@\[-`{-~])")


def character_reference(char: str) -> str:
    return f"&#x{ord(char):X};"


def _escape_backslashes(value: str, after: str) -> str:
    # A backslash that would escape the next character is doubled.
    whole = value + after
    result = []
    start = 0
    for match in _BACKSLASH_RE.finditer(whole):
        position = match.start()
        if position >= len(value):
            break
        result.append(value[start:position])
        result.append("\\")
        start = position
    result.append(value[start:])
    return "".join(result)


def safe(
    value: str,
    stack: Sequence[str],
    unsafe: Iterable[UnsafePattern] = DEFAULT_UNSAFE,
    *,
    before: str = "",
    after: str = "",
    encode: str = "",
) -> str:
    """Escape *value* for the context described by *stack*.

    *before* and *after* are the characters that will surround the value in
    the output; they decide whether line-start and neighbour patterns match
    but are not part of the result.  ASCII punctuation is escaped with a
    backslash (unless listed in *encode*), anything else becomes a
    hexadecimal character reference.
    """
    text = before + value + after
    infos: dict[int, tuple[bool, bool]] = {}

    for pattern in unsafe:
        if not pattern.in_scope(stack):
            continue
        has_before = pattern.before is not None or pattern.at_break
        has_after = pattern.after is not None
        for match in compile_pattern(pattern).finditer(text):
            position = match.start() + (len(match.group(1)) if has_before else 0)
            if position in infos:
                seen_before, seen_after = infos[position]
                infos[position] = (seen_before and has_before, seen_after and has_after)
            else:
                infos[position] = (has_before, has_after)

    positions = sorted(infos)
    start = len(before)
    end = len(text) - len(after)
    result = []
    for index, position in enumerate(positions):
        if position < start or position >= end:
            continue
        # Only one of two neighbouring characters needs escaping when the
        # pattern of one depends on the other.
        needs_next = infos[position][1]
        needs_previous = infos[position][0]
        if position + 1 < end and index + 1 < len(positions) and positions[index + 1] == position + 1:
            if needs_next and infos[position + 1] == (False, False):
                continue
        if index > 0 and positions[index - 1] == position - 1:
            if needs_previous and infos[position - 1] == (False, False):
                continue

        if start != position:
            result.append(_escape_backslashes(text[start:position], "\\"))
        start = position
        char = text[position]
        if _ASCII_PUNCTUATION_RE.match(char) and char not in encode:
            result.append("\\")
        else:
            result.append(character_reference(char))
            start += 1

    result.append(_escape_backslashes(text[start:end], after))
    return "".join(result)


# ---------------------------------------------------------------------------
# Table cell helpers
# ---------------------------------------------------------------------------


def escape_code_pipes(value: str) -> str:
    """Escape every pipe in rendered inline code so it stays inside its cell."""
    return value.replace("|", "\\|")


def unescape_code_pipes(value: str) -> str:
    r"""Reverse :func:`escape_code_pipes` for code read from a table.

    Only ``\|`` becomes ``|``; ``\\`` is left untouched because a backslash
    cannot escape a pipe's escape.
    """
    return re.sub(r"\\([\\|])", lambda m: m.group(1) if m.group(1) == "|" else m.group(0), value)


def escape_cell_text(value: str) -> str:
    """Escape plain text written inside a table cell."""
    return safe(value, ("tableCell", "phrasing"), TABLE_UNSAFE, before=" ", after=" ")


def escape_line_start(value: str) -> str:
    """Escape text written at the start of a line outside any table."""
    return safe(value, ("phrasing",), TABLE_UNSAFE, before="\n", after="\n")
