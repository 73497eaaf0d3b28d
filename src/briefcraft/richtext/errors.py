"""Exceptions raised by the rich-text engine.

Parsing never raises; malformed input degrades to text (see
``parser.ParseNote``). Everything else raises a RichTextError subclass.
"""


class RichTextError(Exception):
    """Base class for rich-text engine errors."""


class InvalidOperationError(RichTextError):
    """An editing operation was called with arguments it cannot apply."""


class DocumentInvariantError(RichTextError):
    """A document (or its serialised HTML) violates the tree invariants.

    Only reachable through a defect; the coordinator rejects the mutation
    instead of emitting the HTML.
    """


class FileValidationError(RichTextError):
    """An uploaded image was rejected before touching the document.

    The message is suitable for showing to the user.
    """


class EditorClosedError(RichTextError):
    """An operation was attempted on an editor that has been unmounted."""
