"""Applies edits to a document and reports each change as HTML."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from briefcraft.richtext.errors import DocumentInvariantError
from briefcraft.richtext.normalise import check_document
from briefcraft.richtext.serializer import serialize_document, verify_canonical_html

if TYPE_CHECKING:
    from collections.abc import Callable

    from briefcraft.models.document import Document
    from briefcraft.richtext.operations import EditResult

logger = logging.getLogger(__name__)


def render_document(doc: Document) -> str:
    """Check, serialise and verify a document.

    Raises:
        DocumentInvariantError: The document or its HTML is malformed.
    """
    check_document(doc)
    html = serialize_document(doc)
    verify_canonical_html(html)
    return html


class ChangeCoordinator:
    """Owns one document and forwards its HTML after every applied edit.

    An edit is committed only once the new document has been serialised
    and the HTML verified; otherwise the document is left as it was, the
    callback is not called and the error propagates.

    Attributes:
        on_change: Called synchronously, exactly once per applied edit.
    """

    def __init__(self, document: Document, on_change: Callable[[str], None]) -> None:
        self._html = render_document(document)
        self._document = document
        self.on_change = on_change

    @property
    def document(self) -> Document:
        return self._document

    @property
    def html(self) -> str:
        """HTML of the current document."""
        return self._html

    def apply(self, edit: Callable[[Document], EditResult]) -> EditResult:
        """Run ``edit`` on the current document and commit the result."""
        result = edit(self._document)
        try:
            html = render_document(result.document)
        except DocumentInvariantError:
            logger.error("Rejected edit that would produce invalid HTML", exc_info=True)
            raise

        self._document = result.document
        self._html = html
        self.on_change(html)
        return result
