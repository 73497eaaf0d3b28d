"""Data model for rich-text documents.

A document is an ordered list of blocks. A block is either a
:class:`Paragraph` holding runs of formatted text (:class:`Leaf`) or an
:class:`Image`. These are plain dataclasses with no parent references;
the parser, serialiser and editing operations all walk them top-down.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from typing import TypeAlias


class Align(StrEnum):
    """Paragraph alignment. An unset alignment renders as LEFT."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


# Mark names as they appear on Leaf
BOOLEAN_MARKS = ("bold", "italic", "underline")
VALUE_MARKS = ("color", "background_color", "font_size", "font_family")
MARK_NAMES = BOOLEAN_MARKS + VALUE_MARKS

# CSS property for each value mark, in canonical serialisation order
STYLE_PROPERTIES: dict[str, str] = {
    "color": "color",
    "background_color": "background-color",
    "font_size": "font-size",
    "font_family": "font-family",
}

Marks: TypeAlias = dict[str, bool | str]


@dataclass
class Leaf:
    """A run of text sharing identical formatting."""

    text: str = ""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str | None = None
    background_color: str | None = None
    font_size: str | None = None
    font_family: str | None = None

    def marks(self) -> Marks:
        """Return only the marks that are set on this leaf."""
        result: Marks = {}
        for f in fields(self):
            if f.name == "text":
                continue
            value = getattr(self, f.name)
            if value:
                result[f.name] = value
        return result

    def has_marks(self) -> bool:
        return bool(self.marks())

    def same_marks(self, other: Leaf) -> bool:
        return self.marks() == other.marks()

    def with_text(self, text: str) -> Leaf:
        return replace(self, text=text)

    def with_marks(self, marks: Marks) -> Leaf:
        """Return a copy of this leaf carrying exactly ``marks``."""
        return leaf_with_marks(self.text, marks)


def leaf_with_marks(text: str, marks: Marks) -> Leaf:
    """Build a leaf from text and a marks mapping (unset marks are cleared)."""
    leaf = Leaf(text=text)
    for name, value in marks.items():
        if name not in MARK_NAMES:
            continue
        if name in BOOLEAN_MARKS:
            setattr(leaf, name, bool(value))
        elif value:
            setattr(leaf, name, str(value))
    return leaf


def _empty_children() -> list[Leaf]:
    return [Leaf()]


@dataclass
class Paragraph:
    """A block of formatted text. Always holds at least one leaf."""

    children: list[Leaf] = field(default_factory=_empty_children)
    align: Align | None = None

    @property
    def text(self) -> str:
        return "".join(leaf.text for leaf in self.children)


@dataclass
class Image:
    """An image block.

    ``children`` always holds exactly one empty leaf so every block has the
    same shape; it is never rendered.
    """

    url: str
    alt: str = ""
    width: int | None = None
    height: int | None = None
    children: list[Leaf] = field(default_factory=_empty_children)

    @property
    def text(self) -> str:
        return ""


Block: TypeAlias = Paragraph | Image


@dataclass
class Document:
    """An ordered list of blocks; never empty."""

    blocks: list[Block] = field(default_factory=lambda: [Paragraph()])

    @classmethod
    def empty(cls) -> Document:
        return cls(blocks=[Paragraph()])

    def __len__(self) -> int:
        return len(self.blocks)

    def __getitem__(self, index: int) -> Block:
        return self.blocks[index]

    @property
    def text(self) -> str:
        """Plain text of the document, one line per block."""
        return "\n".join(block.text for block in self.blocks)
