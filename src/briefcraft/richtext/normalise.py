"""Normal form and invariant checks for documents.

Normal form:
- a document holds at least one block
- a paragraph holds at least one leaf; adjacent leaves never carry
  identical marks; empty-text leaves only exist as the single, unmarked
  leaf of an empty paragraph
- an image holds exactly one empty, unmarked leaf

Every editing operation and the parser return documents in normal form,
which is what makes ``parse(serialize(doc)) == doc`` hold.
"""

from __future__ import annotations

import re
from dataclasses import replace

from briefcraft.models.document import (
    BOOLEAN_MARKS,
    VALUE_MARKS,
    Align,
    Document,
    Image,
    Leaf,
    Paragraph,
)
from briefcraft.richtext.errors import DocumentInvariantError, InvalidOperationError

# A mark value has to survive a trip through an inline style declaration
_BAD_VALUE_CHARS = re.compile(r"[;\x00-\x1f]")


def clean_mark_value(value: str) -> str:
    """Collapse whitespace in a CSS value the way it is stored on a leaf."""
    return " ".join(value.split())


def validate_mark(name: str, value: bool | str) -> bool | str:
    """Check a mark name/value pair and return the value in stored form.

    Raises:
        InvalidOperationError: Unknown mark, or a value that cannot be
            written into an inline style.
    """
    if name in BOOLEAN_MARKS:
        if not isinstance(value, bool):
            msg = f"Mark {name!r} takes a boolean, got {value!r}"
            raise InvalidOperationError(msg)
        return value
    if name not in VALUE_MARKS:
        msg = f"Unknown mark {name!r}"
        raise InvalidOperationError(msg)
    if not isinstance(value, str):
        msg = f"Mark {name!r} takes a string value, got {value!r}"
        raise InvalidOperationError(msg)
    cleaned = clean_mark_value(value)
    if not cleaned or _BAD_VALUE_CHARS.search(cleaned):
        msg = f"Invalid value for mark {name!r}: {value!r}"
        raise InvalidOperationError(msg)
    return cleaned


def normalise_paragraph(paragraph: Paragraph) -> Paragraph:
    """Merge identically-marked neighbours and drop empty leaves."""
    merged: list[Leaf] = []
    for leaf in paragraph.children:
        if not leaf.text:
            continue
        if merged and merged[-1].same_marks(leaf):
            merged[-1] = merged[-1].with_text(merged[-1].text + leaf.text)
        else:
            merged.append(replace(leaf))
    if not merged:
        merged = [Leaf()]
    return Paragraph(children=merged, align=paragraph.align)


def normalise_document(doc: Document) -> Document:
    """Return a copy of ``doc`` in normal form."""
    blocks: list[Paragraph | Image] = []
    for block in doc.blocks:
        match block:
            case Paragraph():
                blocks.append(normalise_paragraph(block))
            case Image():
                blocks.append(replace(block, children=[Leaf()]))
    if not blocks:
        blocks = [Paragraph()]
    return Document(blocks=blocks)


def _check_leaf(leaf: Leaf, where: str) -> None:
    if not isinstance(leaf, Leaf):
        msg = f"{where}: child is not a Leaf ({type(leaf).__name__})"
        raise DocumentInvariantError(msg)
    if not isinstance(leaf.text, str):
        msg = f"{where}: leaf text is not a string"
        raise DocumentInvariantError(msg)
    for name in VALUE_MARKS:
        value = getattr(leaf, name)
        if value is None:
            continue
        try:
            stored = validate_mark(name, value)
        except InvalidOperationError as exc:
            raise DocumentInvariantError(f"{where}: {exc}") from exc
        if stored != value:
            msg = f"{where}: mark {name!r} value {value!r} is not in stored form"
            raise DocumentInvariantError(msg)


def _check_dimension(value: int | None, name: str, where: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        msg = f"{where}: image {name} must be a positive integer, got {value!r}"
        raise DocumentInvariantError(msg)


def check_document(doc: Document) -> None:
    """Raise DocumentInvariantError if ``doc`` breaks a tree invariant."""
    if not doc.blocks:
        raise DocumentInvariantError("Document has no blocks")

    for index, block in enumerate(doc.blocks):
        where = f"block {index}"
        match block:
            case Paragraph(children=children, align=align):
                if not children:
                    raise DocumentInvariantError(f"{where}: paragraph has no leaves")
                if align is not None and not isinstance(align, Align):
                    msg = f"{where}: invalid alignment {align!r}"
                    raise DocumentInvariantError(msg)
                for leaf in children:
                    _check_leaf(leaf, where)
            case Image(url=url, alt=alt, width=width, height=height):
                if not isinstance(url, str) or not url:
                    raise DocumentInvariantError(f"{where}: image has no url")
                if not isinstance(alt, str):
                    raise DocumentInvariantError(f"{where}: image alt is not a string")
                _check_dimension(width, "width", where)
                _check_dimension(height, "height", where)
                if len(block.children) != 1 or block.children[0] != Leaf():
                    msg = f"{where}: image must hold exactly one empty leaf"
                    raise DocumentInvariantError(msg)
            case _:
                msg = f"{where}: unknown block type {type(block).__name__}"
                raise DocumentInvariantError(msg)
