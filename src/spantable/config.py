"""Serializer configuration."""

from __future__ import annotations

from dataclasses import dataclass

from spantable.width import StringLength


@dataclass
class Options:
    """Options for :func:`spantable.serialize.to_markdown`.

    ``table_cell_padding`` puts a space between pipes and cell text,
    ``table_pipe_align`` pads cells so pipes line up and ``string_length``
    measures cell text for that alignment (code points when unset).
    """

    table_cell_padding: bool = True
    table_pipe_align: bool = True
    string_length: StringLength | None = None
