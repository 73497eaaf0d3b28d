"""Rich-text engine: HTML parsing, canonical serialisation and editing."""

from briefcraft.richtext.coordinator import ChangeCoordinator, render_document
from briefcraft.richtext.editor import EditorState, RichTextEditor
from briefcraft.richtext.errors import (
    DocumentInvariantError,
    EditorClosedError,
    FileValidationError,
    InvalidOperationError,
    RichTextError,
)
from briefcraft.richtext.operations import (
    EditResult,
    add_mark,
    delete_range,
    insert_break,
    insert_image,
    insert_text,
    remove_mark,
    resize_image,
    set_align,
    set_image_size,
    toggle_mark,
)
from briefcraft.richtext.parser import ParseNote, parse_html, parse_html_with_notes
from briefcraft.richtext.serializer import serialize_document, verify_canonical_html

__all__ = [
    "ChangeCoordinator",
    "DocumentInvariantError",
    "EditResult",
    "EditorClosedError",
    "EditorState",
    "FileValidationError",
    "InvalidOperationError",
    "ParseNote",
    "RichTextEditor",
    "RichTextError",
    "add_mark",
    "delete_range",
    "insert_break",
    "insert_image",
    "insert_text",
    "parse_html",
    "parse_html_with_notes",
    "remove_mark",
    "render_document",
    "resize_image",
    "serialize_document",
    "set_align",
    "set_image_size",
    "toggle_mark",
    "verify_canonical_html",
]
