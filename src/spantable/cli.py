"""Entry point for the spantable CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="spantable",
        description="Normalize, render and inspect markdown tables with column and row spans",
    )
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    commands = parser.add_subparsers(dest="command", required=True)

    fmt = commands.add_parser("format", help="Re-align the tables of a document, keeping everything else")
    fmt.add_argument("file", nargs="?", help="Markdown file (default: stdin)")
    fmt.add_argument("--no-padding", action="store_true", help="No space between pipes and cell text")
    fmt.add_argument("--no-pipe-align", action="store_true", help="Do not pad cells to align pipes")
    fmt.add_argument(
        "--display-width",
        action="store_true",
        help="Measure cells by terminal display width (wide characters, emoji, ANSI codes)",
    )

    html = commands.add_parser("html", help="Render a document to HTML")
    html.add_argument("file", nargs="?", help="Markdown file (default: stdin)")

    tree = commands.add_parser("tree", help="Print the syntax tree as JSON")
    tree.add_argument("file", nargs="?", help="Markdown file (default: stdin)")
    tree.add_argument("--no-positions", action="store_true", help="Leave out source positions")

    return parser.parse_args(argv)


def _read(path: str | None) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from spantable.config import Options
    from spantable.hast import to_hast, to_html
    from spantable.parse import from_markdown
    from spantable.reformat import format_tables
    from spantable.width import display_width

    try:
        text = _read(args.file)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    logger.info("Read %d characters from %s", len(text), args.file or "stdin")

    if args.command == "format":
        options = Options(
            table_cell_padding=not args.no_padding,
            table_pipe_align=not args.no_pipe_align,
            string_length=display_width if args.display_width else None,
        )
        sys.stdout.write(format_tables(text, options))
    elif args.command == "html":
        sys.stdout.write(to_html(to_hast(from_markdown(text))) + "\n")
    else:
        root = from_markdown(text, positions=not args.no_positions)
        sys.stdout.write(json.dumps(root.model_dump(exclude_none=True), indent=2, ensure_ascii=False) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
