"""Selections over a document.

A :class:`Point` addresses a position as ``(block index, character
offset)`` within the block's plain text. Offsets do not depend on how a
paragraph's text is split into leaves, so a selection stays valid across
mark changes that split or merge leaves. Image blocks only have offset 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from briefcraft.models.document import Document


@dataclass(frozen=True, order=True)
class Point:
    """A caret position inside a document."""

    block: int
    offset: int = 0


@dataclass(frozen=True)
class Selection:
    """A range between an anchor and a focus point.

    The anchor is where the selection started and the focus where it ends;
    the focus may precede the anchor for backwards selections.
    """

    anchor: Point
    focus: Point

    @classmethod
    def caret(cls, block: int, offset: int = 0) -> Selection:
        point = Point(block, offset)
        return cls(anchor=point, focus=point)

    @classmethod
    def span(
        cls, start_block: int, start_offset: int, end_block: int, end_offset: int
    ) -> Selection:
        return cls(
            anchor=Point(start_block, start_offset),
            focus=Point(end_block, end_offset),
        )

    @classmethod
    def document_start(cls) -> Selection:
        return cls.caret(0, 0)

    @classmethod
    def document_end(cls, doc: Document) -> Selection:
        last = len(doc.blocks) - 1
        return cls.caret(last, len(doc.blocks[last].text))

    @classmethod
    def whole(cls, doc: Document) -> Selection:
        last = len(doc.blocks) - 1
        return cls.span(0, 0, last, len(doc.blocks[last].text))

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.focus

    @property
    def start(self) -> Point:
        return min(self.anchor, self.focus)

    @property
    def end(self) -> Point:
        return max(self.anchor, self.focus)

    def collapse_to_start(self) -> Selection:
        return Selection(anchor=self.start, focus=self.start)

    def block_indexes(self) -> range:
        """Indexes of every block the selection intersects."""
        return range(self.start.block, self.end.block + 1)

    def block_ranges(self, doc: Document) -> Iterator[tuple[int, int, int]]:
        """Yield ``(block index, start offset, end offset)`` per intersected block."""
        start, end = self.start, self.end
        for index in self.block_indexes():
            length = len(doc.blocks[index].text)
            lo = start.offset if index == start.block else 0
            hi = end.offset if index == end.block else length
            yield index, lo, hi

    def is_within(self, doc: Document) -> bool:
        """True when both points address existing positions in ``doc``."""
        for point in (self.anchor, self.focus):
            if not 0 <= point.block < len(doc.blocks):
                return False
            if not 0 <= point.offset <= len(doc.blocks[point.block].text):
                return False
        return True
