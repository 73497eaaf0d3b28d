"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from briefcraft.config import EditorConfig, Settings
from briefcraft.models import Document, Image, Leaf, Paragraph
from briefcraft.richtext.editor import RichTextEditor
from briefcraft.richtext.fonts import PageHead

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def editor_config() -> EditorConfig:
    return EditorConfig()


@pytest.fixture
def changes() -> list[str]:
    """HTML strings passed to on_change, in order."""
    return []


@pytest.fixture
def page_head() -> PageHead:
    return PageHead()


@pytest.fixture
def make_editor(
    changes: list[str], page_head: PageHead, settings: Settings
) -> Iterator[Callable[..., RichTextEditor]]:
    """Factory for mounted editors; all are unmounted at teardown."""
    created: list[RichTextEditor] = []

    def _make(initial: str | None = None, **kwargs: object) -> RichTextEditor:
        kwargs.setdefault("head", page_head)
        kwargs.setdefault("settings", settings)
        editor = RichTextEditor(
            initial, changes.append, **kwargs  # type: ignore[arg-type]
        )
        created.append(editor)
        return editor.mount()

    yield _make
    for editor in created:
        editor.unmount()


@pytest.fixture
def two_paragraphs() -> Document:
    return Document(
        blocks=[
            Paragraph(children=[Leaf("Hello "), Leaf("world", bold=True)]),
            Paragraph(children=[Leaf("Second line")]),
        ]
    )


@pytest.fixture
def mixed_document() -> Document:
    """Paragraph, image, paragraph, paragraph."""
    return Document(
        blocks=[
            Paragraph(children=[Leaf("Intro")]),
            Image(url="https://example.com/a.png", alt="A"),
            Paragraph(children=[Leaf("Middle")]),
            Paragraph(children=[Leaf("End")]),
        ]
    )
