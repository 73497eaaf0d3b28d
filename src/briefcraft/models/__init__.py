"""Data models for rich-text documents and selections."""

from briefcraft.models.document import (
    BOOLEAN_MARKS,
    MARK_NAMES,
    STYLE_PROPERTIES,
    VALUE_MARKS,
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

__all__ = [
    "BOOLEAN_MARKS",
    "MARK_NAMES",
    "STYLE_PROPERTIES",
    "VALUE_MARKS",
    "Align",
    "Block",
    "Document",
    "Image",
    "Leaf",
    "Marks",
    "Paragraph",
    "Point",
    "Selection",
    "leaf_with_marks",
]
