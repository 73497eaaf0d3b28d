"""Tests for RichTextEditor: lifecycle, per-command callbacks, async images."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import pytest

from briefcraft.models import Image, Selection
from briefcraft.richtext import editor as editor_module
from briefcraft.richtext.editor import EditorState, RichTextEditor
from briefcraft.richtext.errors import (
    EditorClosedError,
    FileValidationError,
    InvalidOperationError,
)
from briefcraft.richtext.fonts import DEFAULT_FONTS, FontOption
from briefcraft.richtext.uploads import ImageUpload

if TYPE_CHECKING:
    from collections.abc import Callable

    from briefcraft.config import EditorConfig, Settings
    from briefcraft.richtext.fonts import PageHead

    MakeEditor: TypeAlias = Callable[..., RichTextEditor]

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class TestConstruction:
    def test_parses_initial_value(self, make_editor: MakeEditor) -> None:
        editor = make_editor("<p><strong>Hello</strong> world</p>")
        assert editor.html == "<p><strong>Hello</strong> world</p>"
        assert editor.selection == Selection.document_start()

    def test_none_is_fresh_document(self, make_editor: MakeEditor) -> None:
        assert make_editor(None).html == "<p></p>"

    def test_construction_does_not_notify(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        make_editor("<p>x</p>")
        assert changes == []

    def test_default_fonts(self, make_editor: MakeEditor) -> None:
        assert make_editor().font_options == list(DEFAULT_FONTS)

    def test_host_fonts(self, make_editor: MakeEditor) -> None:
        editor = make_editor(fonts=["Inter", {"label": "Serif", "value": "serif"}])
        assert editor.font_options == [
            FontOption("Inter", "Inter"),
            FontOption("Serif", "serif"),
        ]


class TestLifecycle:
    def test_commands_need_a_mounted_editor(
        self, changes: list[str], settings: Settings
    ) -> None:
        editor = RichTextEditor("<p>x</p>", changes.append, settings=settings)
        with pytest.raises(EditorClosedError):
            editor.toggle_mark("bold")
        assert changes == []

    def test_unmounted_editor_rejects_commands(self, make_editor: MakeEditor) -> None:
        editor = make_editor("<p>x</p>")
        editor.unmount()
        assert not editor.is_live
        with pytest.raises(EditorClosedError):
            editor.insert_break()

    def test_context_manager_mounts_and_unmounts(
        self, changes: list[str], page_head: PageHead, settings: Settings
    ) -> None:
        editor = RichTextEditor(None, changes.append, head=page_head, settings=settings)
        with editor as mounted:
            assert mounted is editor
            assert editor.is_live
            assert len(page_head.links) == 1
        assert not editor.is_live
        assert page_head.links == []

    def test_editors_share_one_stylesheet_link(
        self, make_editor: MakeEditor, page_head: PageHead
    ) -> None:
        first = make_editor()
        second = make_editor()
        (href,) = page_head.links
        assert "fonts.googleapis.com" in href
        assert page_head.holders(href) == 2

        first.unmount()
        assert page_head.holders(href) == 1
        second.unmount()
        assert page_head.links == []

    def test_mount_and_unmount_are_idempotent(
        self, make_editor: MakeEditor, page_head: PageHead
    ) -> None:
        editor = make_editor()
        editor.mount()
        (href,) = page_head.links
        assert page_head.holders(href) == 1
        editor.unmount()
        editor.unmount()
        assert page_head.links == []

    def test_editor_without_head_touches_nothing(
        self, changes: list[str], settings: Settings
    ) -> None:
        with RichTextEditor(None, changes.append, settings=settings) as editor:
            editor.type_text("ok")
        assert changes == ["<p>ok</p>"]


class TestCommands:
    def test_each_command_notifies_once(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>Hello world</p>")
        editor.select(Selection.span(0, 0, 0, 5))

        editor.toggle_mark("bold")
        assert changes == ["<p><strong>Hello</strong> world</p>"]

        editor.set_align("center")
        assert changes[-1] == (
            '<p style="text-align:center"><strong>Hello</strong> world</p>'
        )
        assert len(changes) == 2

    def test_toolbar_state_follows_selection(self, make_editor: MakeEditor) -> None:
        editor = make_editor("<p><em>a</em>b</p>")
        editor.select(Selection.span(0, 0, 0, 1))
        assert editor.is_mark_active("italic")
        editor.select(Selection.span(0, 0, 0, 2))
        assert not editor.is_mark_active("italic")

    def test_pending_marks_apply_to_typed_text(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>Hi</p>")
        editor.select(Selection.caret(0, 2))
        editor.toggle_mark("bold")
        assert editor.is_mark_active("bold")
        editor.type_text("!")
        assert changes[-1] == "<p>Hi<strong>!</strong></p>"
        assert len(changes) == 2

    def test_selection_change_drops_pending_marks(
        self, make_editor: MakeEditor
    ) -> None:
        editor = make_editor("<p>Hi</p>")
        editor.select(Selection.caret(0, 2))
        editor.add_mark("color", "red")
        editor.select(Selection.caret(0, 1))
        assert editor.marks is None
        assert editor.active_marks() == {}

    def test_value_marks_and_removal(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>text</p>")
        editor.select(Selection.whole(editor.document))
        editor.add_mark("font_size", "14pt")
        editor.remove_mark("font_size")
        assert changes == [
            '<p><span style="font-size:14pt">text</span></p>',
            "<p>text</p>",
        ]

    def test_insert_variable(self, make_editor: MakeEditor, changes: list[str]) -> None:
        editor = make_editor("<p>Date: </p>")
        editor.select(Selection.caret(0, 6))
        editor.insert_variable("{{date}}")
        assert changes == ["<p>Date: {{date}}</p>"]

    def test_break_and_delete(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>ab</p>")
        editor.select(Selection.caret(0, 1))
        editor.insert_break()
        assert changes[-1] == "<p>a</p><p>b</p>"
        editor.select(Selection.span(0, 1, 1, 0))
        editor.delete_selection()
        assert changes[-1] == "<p>ab</p>"

    def test_rejected_command_changes_nothing(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>x</p>")
        editor.select(Selection.whole(editor.document))
        with pytest.raises(InvalidOperationError):
            editor.add_mark("color", "red; position:fixed")
        assert changes == []
        assert editor.html == "<p>x</p>"

    def test_select_outside_document_is_rejected(self, make_editor: MakeEditor) -> None:
        editor = make_editor("<p>x</p>")
        with pytest.raises(InvalidOperationError):
            editor.select(Selection.caret(0, 5))


class TestInputState:
    def test_typing_composes_until_a_discrete_command(
        self, make_editor: MakeEditor
    ) -> None:
        editor = make_editor()
        assert editor.state is EditorState.IDLE
        editor.type_text("a")
        editor.type_text("b")
        assert editor.state is EditorState.COMPOSING
        editor.toggle_mark("italic")
        assert editor.state is EditorState.IDLE

    def test_blur_and_selection_end_composition(self, make_editor: MakeEditor) -> None:
        editor = make_editor()
        editor.type_text("a")
        editor.blur()
        assert editor.state is EditorState.IDLE
        editor.begin_input()
        editor.select(Selection.caret(0))
        assert editor.state is EditorState.IDLE

    def test_every_keystroke_still_notifies(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor()
        for char in "abc":
            editor.type_text(char)
        assert changes == ["<p>a</p>", "<p>ab</p>", "<p>abc</p>"]


class TestImages:
    def test_grow_twice_from_default(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>Hi</p>")
        editor.select(Selection.caret(0, 2))
        editor.insert_image("https://example.com/a.png", "A")
        editor.grow_image(1)
        editor.grow_image(1)
        img = '<img src="https://example.com/a.png" alt="A"'
        assert changes == [
            f"<p>Hi</p>{img} />",
            f'<p>Hi</p>{img} style="width:320px" />',
            f'<p>Hi</p>{img} style="width:340px" />',
        ]

    def test_shrink_and_explicit_size(self, make_editor: MakeEditor) -> None:
        editor = make_editor('<img src="a.png" alt="" style="width:60px" />')
        editor.shrink_image(0)
        editor.set_image_size(0, height=90)
        image = editor.document.blocks[0]
        assert isinstance(image, Image)
        assert (image.width, image.height) == (50, 90)

    def test_resize_step_comes_from_settings(
        self, make_editor: MakeEditor, settings: Settings
    ) -> None:
        settings.editor.image_resize_step = 50
        editor = make_editor('<img src="a.png" alt="" />')
        editor.grow_image(0)
        assert editor.document.blocks[0].width == 350

    @pytest.mark.asyncio
    async def test_insert_uploaded_file(
        self, make_editor: MakeEditor, changes: list[str]
    ) -> None:
        editor = make_editor("<p>Hi</p>")
        editor.select(Selection.caret(0, 2))

        inserted = await editor.insert_image_file(
            ImageUpload("photo.png", data=PNG_BYTES), alt="Photo"
        )

        assert inserted is True
        assert len(changes) == 1
        image = editor.document.blocks[1]
        assert isinstance(image, Image)
        assert image.url.startswith("data:image/png;base64,")
        assert image.alt == "Photo"

    @pytest.mark.asyncio
    async def test_invalid_upload_is_rejected_before_reading(
        self,
        make_editor: MakeEditor,
        changes: list[str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def _must_not_read(upload: ImageUpload, config: EditorConfig) -> str:
            raise AssertionError("read should not start")

        monkeypatch.setattr(editor_module, "read_image_as_data_url", _must_not_read)
        editor = make_editor("<p>Hi</p>")

        with pytest.raises(FileValidationError, match="Invalid image file"):
            await editor.insert_image_file(ImageUpload("notes.txt", data=b"hello"))
        assert changes == []

    @pytest.mark.asyncio
    async def test_insertion_uses_document_as_it_is_after_the_read(
        self,
        make_editor: MakeEditor,
        changes: list[str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        editor = make_editor("<p>Hi</p>")
        editor.select(Selection.caret(0, 2))

        async def _slow_read(upload: ImageUpload, config: EditorConfig) -> str:
            # The user keeps typing while the file is read
            editor.type_text(" there")
            return "data:image/png;base64,AAAA"

        monkeypatch.setattr(editor_module, "read_image_as_data_url", _slow_read)

        assert await editor.insert_image_file(ImageUpload("a.png", data=PNG_BYTES))
        assert changes == [
            "<p>Hi there</p>",
            '<p>Hi there</p><img src="data:image/png;base64,AAAA" alt="" />',
        ]

    @pytest.mark.asyncio
    async def test_result_is_discarded_after_unmount(
        self,
        make_editor: MakeEditor,
        changes: list[str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        editor = make_editor("<p>Hi</p>")

        async def _read_then_close(upload: ImageUpload, config: EditorConfig) -> str:
            editor.unmount()
            return "data:image/png;base64,AAAA"

        monkeypatch.setattr(editor_module, "read_image_as_data_url", _read_then_close)

        inserted = await editor.insert_image_file(ImageUpload("a.png", data=PNG_BYTES))

        assert inserted is False
        assert changes == []
        assert editor.html == "<p>Hi</p>"
