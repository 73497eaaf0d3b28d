"""Command-line utilities for briefcraft.

Canonicalises and inspects stored template HTML.

Usage:
    briefcraft normalise FILE     Print the canonical HTML for FILE
    briefcraft inspect FILE       Show the block/leaf tree and template tokens
    briefcraft check FILE         Exit 1 if FILE is not canonical HTML

FILE may be ``-`` to read standard input.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from briefcraft import __version__, _setup_logging
from briefcraft.models.document import Document, Image, Paragraph
from briefcraft.richtext.parser import parse_html_with_notes
from briefcraft.richtext.serializer import serialize_document
from briefcraft.richtext.variables import find_template_tokens

if TYPE_CHECKING:
    from briefcraft.models.document import Leaf
    from briefcraft.richtext.parser import ParseNote

console = Console()


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _describe_leaf(leaf: Leaf) -> str:
    marks = ", ".join(
        name if value is True else escape(f"{name}={value}")
        for name, value in leaf.marks().items()
    )
    suffix = f" [dim]({marks})[/]" if marks else ""
    return f"{escape(repr(leaf.text))}{suffix}"


def _document_tree(doc: Document, title: str) -> Tree:
    tree = Tree(f"[bold]{escape(title)}[/]")
    for index, block in enumerate(doc.blocks):
        match block:
            case Paragraph(align=align, children=children):
                label = f"[cyan]{index}[/] paragraph"
                if align is not None:
                    label += f" align={align.value}"
                branch = tree.add(label)
                for leaf in children:
                    branch.add(_describe_leaf(leaf), highlight=False)
            case Image(url=url, alt=alt, width=width, height=height):
                shown = url if len(url) <= 60 else f"{url[:57]}..."
                size = f" {width or 'auto'}x{height or 'auto'}"
                label = escape(f"image {shown!r} alt={alt!r}{size}")
                tree.add(f"[cyan]{index}[/] {label}")
    return tree


def _notes_table(notes: list[ParseNote]) -> Table:
    table = Table(title="Parse notes")
    table.add_column("Kind", style="yellow")
    table.add_column("Detail")
    for note in notes:
        table.add_row(note.kind, escape(note.detail))
    return table


def _cmd_normalise(source: str) -> int:
    doc, _ = parse_html_with_notes(_read_source(source))
    # Plain print: the output is meant for redirection
    print(serialize_document(doc))
    return 0


def _cmd_inspect(source: str) -> int:
    doc, notes = parse_html_with_notes(_read_source(source))
    console.print(_document_tree(doc, source))
    tokens = find_template_tokens(doc.text)
    if tokens:
        console.print(f"Template variables: {', '.join(tokens)}")
    if notes:
        console.print(_notes_table(notes))
    return 0


def _cmd_check(source: str) -> int:
    raw = _read_source(source)
    doc, notes = parse_html_with_notes(raw)
    canonical = serialize_document(doc)
    if notes:
        console.print(_notes_table(notes))
    if canonical == raw.strip():
        console.print(f"[green]Canonical:[/] {escape(source)}")
        return 0
    console.print(f"[yellow]Not canonical:[/] {escape(source)}")
    console.print(canonical, markup=False, highlight=False)
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="briefcraft",
        description="Canonicalise and inspect rich-text template HTML.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("normalise", "print the canonical HTML"),
        ("inspect", "show the document tree"),
        ("check", "exit 1 if the input is not canonical"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("file", help="HTML file, or - for stdin")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``briefcraft`` command."""
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    _setup_logging()

    try:
        match args.command:
            case "normalise":
                return _cmd_normalise(args.file)
            case "inspect":
                return _cmd_inspect(args.file)
            case "check":
                return _cmd_check(args.file)
    except OSError as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 2
    return 2


if __name__ == "__main__":
    sys.exit(main())
