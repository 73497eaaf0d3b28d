"""Editing operations on documents.

Every operation takes a document and a selection and returns an
:class:`EditResult`; the input document is never mutated. Results are
always in normal form (see ``normalise``).

Mark semantics:
- boolean marks (bold, italic, underline) toggle; on a collapsed
  selection the toggle only changes the pending marks used for the next
  insertion
- value marks (color, background_color, font_size, font_family) are
  overwrite-only
- a mark is "active" on an expanded selection when every selected
  character carries it

Images are addressed by their block index; a point on an image always
has offset 0 and an expanded selection touching an image removes it.
"""

# Pattern: Functional Core (pure functions over immutable-by-convention data)

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, NamedTuple

from briefcraft.models.document import (
    BOOLEAN_MARKS,
    MARK_NAMES,
    Align,
    Block,
    Document,
    Image,
    Leaf,
    Marks,
    Paragraph,
    leaf_with_marks,
)
from briefcraft.models.selection import Point, Selection
from briefcraft.richtext.errors import InvalidOperationError
from briefcraft.richtext.normalise import (
    normalise_document,
    normalise_paragraph,
    validate_mark,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from briefcraft.config import EditorConfig

logger = logging.getLogger(__name__)


class EditResult(NamedTuple):
    """Outcome of an editing operation.

    Attributes:
        document: The new document.
        selection: Where the selection sits in the new document.
        marks: Pending marks for the next insertion, or None to take them
            from the text at the cursor.
    """

    document: Document
    selection: Selection
    marks: Marks | None = None


# ---------------------------------------------------------------------------
# Leaf-level helpers
# ---------------------------------------------------------------------------


def _split_leaves(children: list[Leaf], cuts: set[int]) -> list[Leaf]:
    """Split leaves so every offset in ``cuts`` falls on a leaf boundary."""
    out: list[Leaf] = []
    pos = 0
    for leaf in children:
        end = pos + len(leaf.text)
        last = pos
        for cut in sorted(c for c in cuts if pos < c < end):
            out.append(leaf.with_text(leaf.text[last - pos : cut - pos]))
            last = cut
        out.append(leaf.with_text(leaf.text[last - pos :]))
        pos = end
    return out


def _slice_leaves(paragraph: Paragraph, lo: int, hi: int) -> list[Leaf]:
    """Leaves covering characters ``[lo, hi)`` of a paragraph."""
    out: list[Leaf] = []
    pos = 0
    for leaf in _split_leaves(paragraph.children, {lo, hi}):
        end = pos + len(leaf.text)
        if leaf.text and lo <= pos and end <= hi:
            out.append(leaf)
        pos = end
    return out


def _map_range(
    paragraph: Paragraph, lo: int, hi: int, fn: Callable[[Leaf], Leaf]
) -> Paragraph:
    """Apply ``fn`` to the leaves covering ``[lo, hi)``."""
    out: list[Leaf] = []
    pos = 0
    for leaf in _split_leaves(paragraph.children, {lo, hi}):
        end = pos + len(leaf.text)
        if leaf.text and lo <= pos and end <= hi:
            leaf = fn(leaf)
        out.append(leaf)
        pos = end
    return normalise_paragraph(Paragraph(children=out, align=paragraph.align))


def _map_selection(
    doc: Document, selection: Selection, fn: Callable[[Leaf], Leaf]
) -> Document:
    blocks = list(doc.blocks)
    for index, lo, hi in selection.block_ranges(doc):
        block = blocks[index]
        if isinstance(block, Paragraph) and lo < hi:
            blocks[index] = _map_range(block, lo, hi, fn)
    return Document(blocks=blocks)


def _require_selection(doc: Document, selection: Selection) -> None:
    if not selection.is_within(doc):
        msg = f"Selection {selection} is outside the document"
        raise InvalidOperationError(msg)


# ---------------------------------------------------------------------------
# Mark queries
# ---------------------------------------------------------------------------


def marks_at(doc: Document, point: Point) -> Marks:
    """Marks that text typed at ``point`` would inherit.

    That is the marks of the leaf ending at or containing the character
    before the point (the first leaf at offset 0).
    """
    block = doc.blocks[point.block]
    if isinstance(block, Image):
        return {}
    if point.offset == 0:
        return block.children[0].marks()
    pos = 0
    for leaf in block.children:
        end = pos + len(leaf.text)
        if pos < point.offset <= end:
            return leaf.marks()
        pos = end
    return block.children[-1].marks()


def active_marks(
    doc: Document, selection: Selection, pending: Marks | None = None
) -> Marks:
    """Marks considered active for toolbar state and toggling.

    Collapsed: the pending marks if any, else the marks at the cursor.
    Expanded: the marks shared by every selected character.
    """
    if selection.is_collapsed:
        return dict(pending) if pending is not None else marks_at(doc, selection.start)

    common: Marks | None = None
    for index, lo, hi in selection.block_ranges(doc):
        block = doc.blocks[index]
        if not isinstance(block, Paragraph):
            continue
        for leaf in _slice_leaves(block, lo, hi):
            marks = leaf.marks()
            if common is None:
                common = marks
            else:
                common = {k: v for k, v in common.items() if marks.get(k) == v}
    if common is None:
        return marks_at(doc, selection.start)
    return common


def is_mark_active(
    doc: Document, selection: Selection, mark: str, pending: Marks | None = None
) -> bool:
    return bool(active_marks(doc, selection, pending).get(mark))


# ---------------------------------------------------------------------------
# Mark operations
# ---------------------------------------------------------------------------


def add_mark(
    doc: Document,
    selection: Selection,
    mark: str,
    value: bool | str = True,
    *,
    pending: Marks | None = None,
) -> EditResult:
    """Set ``mark`` to ``value`` on the selection (overwrite semantics).

    On a collapsed selection only the pending marks change.
    """
    value = validate_mark(mark, value)
    _require_selection(doc, selection)

    if selection.is_collapsed:
        marks = active_marks(doc, selection, pending)
        marks[mark] = value
        return EditResult(doc, selection, marks)

    new_doc = _map_selection(
        doc, selection, lambda leaf: replace(leaf, **{mark: value})
    )
    return EditResult(new_doc, selection, None)


def remove_mark(
    doc: Document, selection: Selection, mark: str, *, pending: Marks | None = None
) -> EditResult:
    """Clear ``mark`` from the selection (or from the pending marks)."""
    if mark not in MARK_NAMES:
        msg = f"Unknown mark {mark!r}"
        raise InvalidOperationError(msg)
    _require_selection(doc, selection)

    if selection.is_collapsed:
        marks = active_marks(doc, selection, pending)
        marks.pop(mark, None)
        return EditResult(doc, selection, marks)

    cleared: bool | None = False if mark in BOOLEAN_MARKS else None
    new_doc = _map_selection(
        doc, selection, lambda leaf: replace(leaf, **{mark: cleared})
    )
    return EditResult(new_doc, selection, None)


def toggle_mark(
    doc: Document, selection: Selection, mark: str, *, pending: Marks | None = None
) -> EditResult:
    """Toggle a boolean mark on the selection.

    Raises:
        InvalidOperationError: ``mark`` is a value mark; those are only set
            through :func:`add_mark`.
    """
    if mark not in BOOLEAN_MARKS:
        msg = f"Only boolean marks can be toggled, got {mark!r}"
        raise InvalidOperationError(msg)
    _require_selection(doc, selection)

    if is_mark_active(doc, selection, mark, pending):
        return remove_mark(doc, selection, mark, pending=pending)
    return add_mark(doc, selection, mark, True, pending=pending)


# ---------------------------------------------------------------------------
# Block operations
# ---------------------------------------------------------------------------


def set_align(doc: Document, selection: Selection, align: Align | str) -> EditResult:
    """Align every paragraph the selection intersects."""
    try:
        alignment = Align(align)
    except ValueError:
        msg = f"Invalid alignment {align!r}"
        raise InvalidOperationError(msg) from None
    _require_selection(doc, selection)

    blocks = list(doc.blocks)
    for index in selection.block_indexes():
        block = blocks[index]
        if isinstance(block, Paragraph):
            blocks[index] = replace(block, align=alignment)
    return EditResult(Document(blocks=blocks), selection, None)


def delete_range(doc: Document, selection: Selection) -> EditResult:
    """Delete the selected content, leaving a collapsed selection at its start.

    The paragraphs at either end are merged (keeping the first one's
    alignment); images anywhere in the range are removed.
    """
    _require_selection(doc, selection)
    if selection.is_collapsed:
        return EditResult(doc, selection, None)

    start, end = selection.start, selection.end
    first, last = doc.blocks[start.block], doc.blocks[end.block]

    kept: list[Block] = []
    cursor = Point(start.block, 0)
    match first, last:
        case Paragraph(), Paragraph():
            leaves = _slice_leaves(first, 0, start.offset)
            leaves += _slice_leaves(last, end.offset, len(last.text))
            kept.append(Paragraph(children=leaves, align=first.align))
            cursor = Point(start.block, start.offset)
        case Paragraph(), Image():
            kept.append(
                Paragraph(
                    children=_slice_leaves(first, 0, start.offset), align=first.align
                )
            )
            cursor = Point(start.block, start.offset)
        case Image(), Paragraph():
            kept.append(
                Paragraph(
                    children=_slice_leaves(last, end.offset, len(last.text)),
                    align=last.align,
                )
            )

    blocks = doc.blocks[: start.block] + kept + doc.blocks[end.block + 1 :]
    new_doc = normalise_document(Document(blocks=blocks))
    if cursor.block >= len(new_doc.blocks):
        cursor = Point(len(new_doc.blocks) - 1, 0)
    return EditResult(new_doc, Selection(anchor=cursor, focus=cursor), None)


def _split_paragraph(paragraph: Paragraph, offset: int) -> tuple[Paragraph, Paragraph]:
    head = Paragraph(
        children=_slice_leaves(paragraph, 0, offset), align=paragraph.align
    )
    tail = Paragraph(
        children=_slice_leaves(paragraph, offset, len(paragraph.text)),
        align=paragraph.align,
    )
    return normalise_paragraph(head), normalise_paragraph(tail)


def insert_break(doc: Document, selection: Selection) -> EditResult:
    """Split the paragraph at the cursor; the new one inherits alignment.

    On an image, an empty paragraph is added after it.
    """
    doc, selection, _ = delete_range(doc, selection)
    point = selection.start
    block = doc.blocks[point.block]
    blocks = list(doc.blocks)

    if isinstance(block, Image):
        blocks.insert(point.block + 1, Paragraph())
    else:
        head, tail = _split_paragraph(block, point.offset)
        blocks[point.block : point.block + 1] = [head, tail]
    return EditResult(Document(blocks=blocks), Selection.caret(point.block + 1), None)


def insert_text(
    doc: Document, selection: Selection, text: str, *, pending: Marks | None = None
) -> EditResult:
    """Replace the selection with ``text``.

    The text carries the pending marks (or the marks at the selection
    start). Line breaks split paragraphs. Template tokens such as
    ``{{date}}`` are inserted as ordinary text.
    """
    _require_selection(doc, selection)
    # HTML parsing drops NUL from text, so it never enters a document
    text = text.replace("\x00", "")
    if not text:
        return EditResult(doc, selection, pending)

    marks = dict(pending) if pending is not None else marks_at(doc, selection.start)
    doc, selection, _ = delete_range(doc, selection)
    point = selection.start
    blocks = list(doc.blocks)

    block = blocks[point.block]
    if isinstance(block, Image):
        index = point.block + 1
        head, tail = Paragraph(), Paragraph()
    else:
        index = point.block
        head, tail = _split_paragraph(block, point.offset)

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    new_paragraphs: list[Paragraph] = []
    for number, line in enumerate(lines):
        leaves: list[Leaf] = []
        if number == 0:
            leaves.extend(head.children)
        leaves.append(leaf_with_marks(line, marks))
        if number == len(lines) - 1:
            cursor_offset = sum(len(leaf.text) for leaf in leaves)
            leaves.extend(tail.children)
        new_paragraphs.append(
            normalise_paragraph(Paragraph(children=leaves, align=head.align))
        )

    if isinstance(block, Image):
        blocks[index:index] = new_paragraphs
    else:
        blocks[index : index + 1] = new_paragraphs
    cursor = Selection.caret(index + len(lines) - 1, cursor_offset)
    return EditResult(Document(blocks=blocks), cursor, None)


# ---------------------------------------------------------------------------
# Image operations
# ---------------------------------------------------------------------------


def _attribute_text(value: str) -> str:
    """Apply the newline and NUL handling HTML parsing does to attributes."""
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    return value.replace("\x00", "\ufffd")


def insert_image(
    doc: Document, selection: Selection, url: str, alt: str = ""
) -> EditResult:
    """Insert an image block at the cursor.

    An expanded selection is deleted first. Inside a paragraph the image
    goes before it at offset 0, after it at the end, and splits it
    otherwise. On an image, the new one goes after it. The new image has
    no explicit size.
    """
    url = _attribute_text(url).strip()
    if not url:
        raise InvalidOperationError("Image url must not be empty")
    doc, selection, _ = delete_range(doc, selection)
    point = selection.start
    block = doc.blocks[point.block]
    blocks = list(doc.blocks)
    image = Image(url=url, alt=_attribute_text(alt))

    match block:
        case Image():
            index = point.block + 1
            blocks.insert(index, image)
        case Paragraph() if point.offset == len(block.text):
            index = point.block + 1
            blocks.insert(index, image)
        case Paragraph() if point.offset == 0:
            index = point.block
            blocks.insert(index, image)
        case _:
            head, tail = _split_paragraph(block, point.offset)
            index = point.block + 1
            blocks[point.block : point.block + 1] = [head, image, tail]

    following = index + 1
    if following < len(blocks) and isinstance(blocks[following], Paragraph):
        cursor = Selection.caret(following)
    else:
        cursor = Selection.caret(index)
    logger.debug("Inserted image at block %d (%d chars of url)", index, len(url))
    return EditResult(Document(blocks=blocks), cursor, None)


def _image_at(doc: Document, target: int) -> Image:
    if not 0 <= target < len(doc.blocks):
        msg = f"No block at index {target}"
        raise InvalidOperationError(msg)
    block = doc.blocks[target]
    if not isinstance(block, Image):
        msg = f"Block {target} is not an image"
        raise InvalidOperationError(msg)
    return block


def _editor_config(config: EditorConfig | None) -> EditorConfig:
    if config is not None:
        return config
    from briefcraft.config import get_settings

    return get_settings().editor


def resize_image(
    doc: Document,
    selection: Selection,
    target: int,
    delta: int,
    *,
    config: EditorConfig | None = None,
) -> EditResult:
    """Change an image's width by ``delta`` pixels, clamped to the bounds.

    An image without a width is treated as the default width. The height
    is left as it is; width and height are sized independently.
    """
    cfg = _editor_config(config)
    image = _image_at(doc, target)
    base = image.width if image.width is not None else cfg.image_default_width
    width = cfg.clamp_dimension(base + delta)
    if width != base + delta:
        logger.debug("Clamped image width %d to %d", base + delta, width)

    blocks = list(doc.blocks)
    blocks[target] = replace(image, width=width)
    return EditResult(Document(blocks=blocks), selection, None)


def set_image_size(
    doc: Document,
    selection: Selection,
    target: int,
    *,
    width: int | None = None,
    height: int | None = None,
    config: EditorConfig | None = None,
) -> EditResult:
    """Set an image's width and/or height, each clamped to the bounds.

    A dimension passed as None is left unchanged.
    """
    cfg = _editor_config(config)
    image = _image_at(doc, target)
    changes: dict[str, int] = {}
    if width is not None:
        changes["width"] = cfg.clamp_dimension(width)
    if height is not None:
        changes["height"] = cfg.clamp_dimension(height)

    blocks = list(doc.blocks)
    blocks[target] = replace(image, **changes)
    return EditResult(Document(blocks=blocks), selection, None)
