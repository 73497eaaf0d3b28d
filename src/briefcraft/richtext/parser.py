"""HTML to Document parser.

Parsing is total: any string (or None) produces a valid document. Markup
outside the canonical vocabulary degrades to its text content and leaves
a :class:`ParseNote` behind instead of raising.

Structure rules:
- each ``<p>`` becomes a paragraph; ``<br>`` ends the current line
- each ``<img>`` becomes an image block, hoisted out of any paragraph
- block containers (div, lists, tables, ...) are transparent
- loose inline content at top level becomes an implicit paragraph
- with no ``<p>``, ``<br>`` or ``<img>`` anywhere, the whole text content
  becomes one unformatted paragraph
"""

# Pattern: Functional Core (pure functions, DOM walk via selectolax)

from __future__ import annotations

import html as html_module
import logging
import re
from dataclasses import dataclass
from typing import Any

from selectolax.lexbor import LexborHTMLParser

from briefcraft.models.document import (
    STYLE_PROPERTIES,
    Align,
    Block,
    Document,
    Image,
    Leaf,
    Marks,
    Paragraph,
    leaf_with_marks,
)
from briefcraft.richtext.errors import InvalidOperationError
from briefcraft.richtext.normalise import (
    clean_mark_value,
    normalise_document,
    normalise_paragraph,
    validate_mark,
)

logger = logging.getLogger(__name__)

# Tags dropped together with their content
_STRIP_TAGS = ("script", "style", "noscript", "template")

_BOLD_TAGS = frozenset(("strong", "b"))
_ITALIC_TAGS = frozenset(("em", "i"))
_UNDERLINE_TAGS = frozenset(("u",))

# Inline tags that are part of the canonical vocabulary (no note when seen)
_KNOWN_INLINE_TAGS = _BOLD_TAGS | _ITALIC_TAGS | _UNDERLINE_TAGS | {"span"}

# Block containers whose children are processed as top-level content
_BLOCK_TAGS = frozenset(
    (
        "html",
        "body",
        "table",
        "tbody",
        "thead",
        "tfoot",
        "tr",
        "td",
        "th",
        "ul",
        "ol",
        "li",
        "dl",
        "dt",
        "dd",
        "div",
        "section",
        "article",
        "aside",
        "header",
        "footer",
        "nav",
        "main",
        "figure",
        "figcaption",
        "blockquote",
        "pre",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
    )
)

_WHITESPACE_ONLY = re.compile(r"\s*")
_PIXELS = re.compile(r"(\d+)(?:px)?", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class ParseNote:
    """Record of input the parser could not represent faithfully."""

    kind: str  # "stripped", "flattened", "style", "align", "image"
    detail: str


def parse_style(style: str) -> dict[str, str]:
    """Split an inline style attribute into ``{property: value}``.

    Property names are lower-cased; values are whitespace-collapsed.
    Later declarations win.
    """
    declarations: dict[str, str] = {}
    for part in style.split(";"):
        name, sep, value = part.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = clean_mark_value(value)
        if name and value:
            declarations[name] = value
    return declarations


def _pixels(value: str | None) -> int | None:
    """Parse ``"320px"`` or ``"320"`` into a positive int, else None."""
    if not value:
        return None
    match = _PIXELS.fullmatch(value.strip())
    if match is None:
        return None
    pixels = int(match.group(1))
    return pixels if pixels > 0 else None


class _DocumentBuilder:
    """Accumulates blocks while walking the DOM."""

    def __init__(self) -> None:
        self.blocks: list[Block] = []
        self.notes: list[ParseNote] = []
        self._leaves: list[Leaf] = []
        self._run_open = False
        self._align: Align | None = None

    def note(self, kind: str, detail: str) -> None:
        self.notes.append(ParseNote(kind=kind, detail=detail))

    # -- paragraph runs -----------------------------------------------------

    def add_text(self, text: str, marks: Marks) -> None:
        self._leaves.append(leaf_with_marks(text, marks))
        self._run_open = True

    def flush(self, *, force: bool = False) -> None:
        """Close the current run of inline content into a paragraph.

        With ``force`` an empty paragraph is produced even if nothing was
        collected (a ``<br>`` on its own line, an empty ``<p>``).
        """
        if self._run_open or force:
            paragraph = Paragraph(children=self._leaves or [Leaf()], align=self._align)
            self.blocks.append(normalise_paragraph(paragraph))
        self._leaves = []
        self._run_open = False

    # -- element handlers ---------------------------------------------------

    def add_image(self, node: Any) -> None:
        attrs = node.attributes
        src = (attrs.get("src") or "").strip()
        if not src:
            self.note("image", "dropped <img> without src")
            return
        declarations = parse_style(attrs.get("style") or "")
        width = _pixels(declarations.get("width")) or _pixels(attrs.get("width"))
        height = _pixels(declarations.get("height")) or _pixels(attrs.get("height"))
        self.blocks.append(
            Image(url=src, alt=attrs.get("alt") or "", width=width, height=height)
        )

    def paragraph(self, node: Any) -> None:
        self.flush()
        self._align = self._align_for(node)
        produced = len(self.blocks)
        self._walk_inline_children(node, {})
        # An empty <p>, or one ending in text, still yields a paragraph;
        # a trailing <br> is only a placeholder.
        if self._run_open or len(self.blocks) == produced:
            self.flush(force=True)
        self._align = None

    def _align_for(self, node: Any) -> Align | None:
        value = parse_style(node.attributes.get("style") or "").get("text-align")
        if value is None:
            return None
        try:
            return Align(value.lower())
        except ValueError:
            self.note("align", f"dropped text-align:{value}")
            return None

    def _marks_for(self, node: Any, marks: Marks) -> Marks:
        tag = node.tag
        result = dict(marks)
        if tag in _BOLD_TAGS:
            result["bold"] = True
        elif tag in _ITALIC_TAGS:
            result["italic"] = True
        elif tag in _UNDERLINE_TAGS:
            result["underline"] = True
        elif tag not in _KNOWN_INLINE_TAGS:
            self.note("flattened", f"<{tag}> flattened to its text")

        style = node.attributes.get("style")
        if style:
            declarations = parse_style(style)
            for mark, prop in STYLE_PROPERTIES.items():
                if prop not in declarations:
                    continue
                try:
                    result[mark] = validate_mark(mark, declarations.pop(prop))
                except InvalidOperationError as exc:
                    self.note("style", str(exc))
            for prop in declarations:
                self.note("style", f"dropped {prop} on <{tag}>")
        return result

    # -- walkers ------------------------------------------------------------

    def walk_block_children(self, node: Any) -> None:
        child = node.child
        while child is not None:
            self._visit_block(child)
            child = child.next

    def _walk_inline_children(self, node: Any, marks: Marks) -> None:
        child = node.child
        while child is not None:
            self._visit_inline(child, marks)
            child = child.next

    def _visit_block(self, node: Any) -> None:
        tag = node.tag
        if tag == "-text":
            text = node.text_content or ""
            # Indentation between blocks is not content
            if not self._run_open and _WHITESPACE_ONLY.fullmatch(text):
                return
            self.add_text(text, {})
            return
        if not tag or not tag[0].isalpha():
            return  # comments, doctype
        if tag == "p":
            self.paragraph(node)
        elif tag in _BLOCK_TAGS:
            self.flush()
            self.walk_block_children(node)
            self.flush()
        else:
            self._visit_inline(node, {})

    def _visit_inline(self, node: Any, marks: Marks) -> None:
        tag = node.tag
        if tag == "-text":
            text = node.text_content or ""
            if text:
                self.add_text(text, marks)
            return
        if not tag or not tag[0].isalpha():
            return
        if tag == "br":
            self.flush(force=True)
        elif tag == "img":
            self.flush()
            self.add_image(node)
        elif tag == "p" or tag in _BLOCK_TAGS:
            self.flush()
            self._walk_inline_children(node, marks)
            self.flush()
        else:
            self._walk_inline_children(node, self._marks_for(node, marks))


def _text_only_document(text: str) -> Document:
    if _WHITESPACE_ONLY.fullmatch(text):
        text = ""
    return Document(blocks=[Paragraph(children=[Leaf(text=text)])])


def _head_text_blocks(tree: LexborHTMLParser) -> list[Block]:
    # Stray text such as <title> lands in <head> before the body content
    head = tree.head
    text = (head.text(deep=True) or "").strip() if head is not None else ""
    if not text:
        return []
    return [Paragraph(children=[Leaf(text=text)])]


def _parse(html: str) -> tuple[Document, list[ParseNote]]:
    tree = LexborHTMLParser(html)
    notes: list[ParseNote] = []

    stripped = tree.css(", ".join(_STRIP_TAGS))
    if stripped:
        notes.append(
            ParseNote(kind="stripped", detail=f"removed {len(stripped)} element(s)")
        )
        tree.strip_tags(list(_STRIP_TAGS))

    body = tree.body
    root = body if body else tree.root
    if root is None:
        return Document.empty(), notes

    leading = _head_text_blocks(tree) if body else []
    if leading:
        notes.append(
            ParseNote(kind="flattened", detail="kept text found outside <body>")
        )

    if root.css_first("p, br, img") is None:
        text = root.text(deep=True) or ""
        if leading and _WHITESPACE_ONLY.fullmatch(text):
            return Document(blocks=leading), notes
        return Document(blocks=leading + _text_only_document(text).blocks), notes

    builder = _DocumentBuilder()
    builder.walk_block_children(root)
    builder.flush()
    notes.extend(builder.notes)
    blocks = leading + builder.blocks
    return normalise_document(Document(blocks=blocks)), notes


def parse_html_with_notes(html: str | None) -> tuple[Document, list[ParseNote]]:
    """Parse HTML into a Document, returning degradation notes alongside.

    Args:
        html: Stored HTML, or None for a fresh document.

    Returns:
        The document (always valid) and the notes describing anything that
        was dropped or flattened.
    """
    if not html or not html.strip():
        return Document.empty(), []

    try:
        return _parse(html)
    except Exception:
        # Last resort: keep the text, lose the structure
        logger.warning("HTML parse failed, falling back to text", exc_info=True)
        text = html_module.unescape(_TAG_PATTERN.sub("", html))
        note = ParseNote(kind="flattened", detail="unparseable input reduced to text")
        return _text_only_document(text), [note]


def parse_html(html: str | None) -> Document:
    """Parse HTML into a Document. Never raises.

    Degradation notes are logged at DEBUG level.
    """
    doc, notes = parse_html_with_notes(html)
    for note in notes:
        logger.debug("[PARSE] %s: %s", note.kind, note.detail)
    return doc
