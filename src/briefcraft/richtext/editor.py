"""One rich-text editor instance.

The editor owns exactly one document for its lifetime: it is parsed from
the initial HTML when the editor is created, replaced by every applied
edit, and dropped with the editor. Hosts drive it with selection changes
and toolbar commands and receive HTML through ``on_change``.

Lifecycle::

    editor = RichTextEditor(stored_html, save, fonts=org_fonts, head=page_head)
    with editor:                      # mount: font stylesheet acquired
        editor.select(Selection.whole(editor.document))
        editor.toggle_mark("bold")    # on_change(html) fires once
    # unmount: stylesheet released, pending image reads are discarded
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from briefcraft.config import get_settings
from briefcraft.models.selection import Selection
from briefcraft.richtext import operations
from briefcraft.richtext.coordinator import ChangeCoordinator
from briefcraft.richtext.errors import EditorClosedError, InvalidOperationError
from briefcraft.richtext.fonts import (
    FONT_SIZES,
    FontStylesheet,
    normalise_font_options,
    stylesheet_url,
)
from briefcraft.richtext.parser import parse_html
from briefcraft.richtext.uploads import read_image_as_data_url, validate_image_upload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from briefcraft.config import Settings
    from briefcraft.models.document import Align, Document, Marks
    from briefcraft.richtext.fonts import FontOption, PageHead
    from briefcraft.richtext.operations import EditResult
    from briefcraft.richtext.uploads import ImageUpload

logger = logging.getLogger(__name__)


class EditorState(StrEnum):
    """Coarse input state, used by hosts to group keystrokes for undo."""

    IDLE = "idle"
    COMPOSING = "composing"


class RichTextEditor:
    """A mounted editing session over one document.

    Attributes:
        selection: Current selection in the document.
        marks: Pending marks for the next insertion (None: take them from
            the text at the cursor).
        state: IDLE or COMPOSING.
        font_options: Font families offered to the user.
    """

    def __init__(
        self,
        initial_value: str | None,
        on_change: Callable[[str], None],
        *,
        fonts: Sequence[FontOption | Mapping[str, str] | str] | None = None,
        head: PageHead | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._coordinator = ChangeCoordinator(parse_html(initial_value), on_change)
        self.selection = Selection.document_start()
        self.marks: Marks | None = None
        self.state = EditorState.IDLE
        self.font_options = normalise_font_options(fonts)
        self.font_sizes = FONT_SIZES
        self._stylesheet = (
            FontStylesheet(head, stylesheet_url(self._settings.fonts))
            if head is not None
            else None
        )
        self._live = False

    # -- lifecycle ----------------------------------------------------------

    @property
    def is_live(self) -> bool:
        return self._live

    def mount(self) -> RichTextEditor:
        if not self._live:
            self._live = True
            if self._stylesheet is not None:
                self._stylesheet.acquire()
            logger.debug("Editor mounted with %d block(s)", len(self.document.blocks))
        return self

    def unmount(self) -> None:
        if self._live:
            self._live = False
            if self._stylesheet is not None:
                self._stylesheet.release()
            logger.debug("Editor unmounted")

    def __enter__(self) -> RichTextEditor:
        return self.mount()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unmount()

    # -- state --------------------------------------------------------------

    @property
    def document(self) -> Document:
        return self._coordinator.document

    @property
    def html(self) -> str:
        return self._coordinator.html

    def _require_live(self) -> None:
        if not self._live:
            raise EditorClosedError("Editor is not mounted")

    def _apply(
        self,
        edit: Callable[[Document, Selection], EditResult],
        *,
        discrete: bool = True,
    ) -> EditResult:
        self._require_live()
        result = self._coordinator.apply(lambda doc: edit(doc, self.selection))
        self.selection = result.selection
        self.marks = result.marks
        if discrete:
            self.state = EditorState.IDLE
        return result

    def select(self, selection: Selection) -> None:
        """Move the selection. Pending marks are dropped."""
        self._require_live()
        if not selection.is_within(self.document):
            msg = f"Selection {selection} is outside the document"
            raise InvalidOperationError(msg)
        self.selection = selection
        self.marks = None
        self.state = EditorState.IDLE

    def begin_input(self) -> None:
        self._require_live()
        self.state = EditorState.COMPOSING

    def blur(self) -> None:
        self.state = EditorState.IDLE

    def active_marks(self) -> Marks:
        return operations.active_marks(self.document, self.selection, self.marks)

    def is_mark_active(self, mark: str) -> bool:
        return operations.is_mark_active(
            self.document, self.selection, mark, self.marks
        )

    # -- text ---------------------------------------------------------------

    def type_text(self, text: str) -> EditResult:
        """Insert typed text; keeps the editor in the composing state."""
        self.begin_input()
        return self._apply(
            lambda doc, sel: operations.insert_text(doc, sel, text, pending=self.marks),
            discrete=False,
        )

    def insert_variable(self, token: str) -> EditResult:
        """Insert a template token such as ``{{date}}`` as literal text."""
        return self._apply(
            lambda doc, sel: operations.insert_text(doc, sel, token, pending=self.marks)
        )

    def insert_break(self) -> EditResult:
        return self._apply(operations.insert_break)

    def delete_selection(self) -> EditResult:
        return self._apply(operations.delete_range)

    # -- marks and alignment ------------------------------------------------

    def toggle_mark(self, mark: str) -> EditResult:
        return self._apply(
            lambda doc, sel: operations.toggle_mark(doc, sel, mark, pending=self.marks)
        )

    def add_mark(self, mark: str, value: bool | str) -> EditResult:
        return self._apply(
            lambda doc, sel: operations.add_mark(
                doc, sel, mark, value, pending=self.marks
            )
        )

    def remove_mark(self, mark: str) -> EditResult:
        return self._apply(
            lambda doc, sel: operations.remove_mark(doc, sel, mark, pending=self.marks)
        )

    def set_align(self, align: Align | str) -> EditResult:
        return self._apply(lambda doc, sel: operations.set_align(doc, sel, align))

    # -- images -------------------------------------------------------------

    def insert_image(self, url: str, alt: str = "") -> EditResult:
        return self._apply(lambda doc, sel: operations.insert_image(doc, sel, url, alt))

    def resize_image(self, target: int, delta: int) -> EditResult:
        cfg = self._settings.editor
        return self._apply(
            lambda doc, sel: operations.resize_image(
                doc, sel, target, delta, config=cfg
            )
        )

    def grow_image(self, target: int) -> EditResult:
        return self.resize_image(target, self._settings.editor.image_resize_step)

    def shrink_image(self, target: int) -> EditResult:
        return self.resize_image(target, -self._settings.editor.image_resize_step)

    def set_image_size(
        self, target: int, *, width: int | None = None, height: int | None = None
    ) -> EditResult:
        cfg = self._settings.editor
        return self._apply(
            lambda doc, sel: operations.set_image_size(
                doc, sel, target, width=width, height=height, config=cfg
            )
        )

    async def insert_image_file(self, upload: ImageUpload, alt: str = "") -> bool:
        """Read an uploaded image and insert it at the selection.

        Validation errors are raised before anything is read. The insertion
        is applied to the document and selection as they are when the read
        finishes, not when it started.

        Returns:
            True if the image was inserted, False if the editor was
            unmounted while the file was being read.

        Raises:
            FileValidationError: The upload was rejected.
            EditorClosedError: The editor is not mounted.
        """
        self._require_live()
        config = self._settings.editor
        validate_image_upload(upload, config)

        data_url = await read_image_as_data_url(upload, config)

        if not self._live:
            logger.info("Discarding image %s: editor was unmounted", upload.filename)
            return False
        self.insert_image(data_url, alt)
        return True
