"""Document to canonical HTML serialiser.

Output is deterministic: the same document always produces byte-identical
HTML. The vocabulary is restricted to::

    <p style="text-align:...">
    <strong> <em> <u>
    <span style="color:...;background-color:...;font-size:...;font-family:...">
    <img src="..." alt="..." style="width:...px;height:...px" />

Leaf wrappers nest in a fixed order (span outermost, then strong, em, u),
style attributes list only the properties that are set, and blocks are
concatenated with no whitespace between them.
"""

from __future__ import annotations

import html as html_module
import logging
import re

from lxml import etree

from briefcraft.models.document import (
    STYLE_PROPERTIES,
    Document,
    Image,
    Leaf,
    Paragraph,
)
from briefcraft.richtext.errors import DocumentInvariantError
from briefcraft.richtext.normalise import check_document

logger = logging.getLogger(__name__)

# Characters HTML tolerates in text but XML does not; irrelevant to markup
# structure, so they are blanked before the well-formedness check.
_XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_ALLOWED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "p": frozenset(("style",)),
    "strong": frozenset(),
    "em": frozenset(),
    "u": frozenset(),
    "span": frozenset(("style",)),
    "img": frozenset(("src", "alt", "style")),
}
_BLOCK_ELEMENTS = frozenset(("p", "img"))


def _attr(value: str) -> str:
    return html_module.escape(value, quote=True)


def serialize_leaf(leaf: Leaf) -> str:
    """Serialise one leaf. Empty leaves produce no output."""
    if not leaf.text:
        return ""

    out = html_module.escape(leaf.text, quote=False)
    if leaf.underline:
        out = f"<u>{out}</u>"
    if leaf.italic:
        out = f"<em>{out}</em>"
    if leaf.bold:
        out = f"<strong>{out}</strong>"

    declarations = [
        f"{prop}:{getattr(leaf, mark)}"
        for mark, prop in STYLE_PROPERTIES.items()
        if getattr(leaf, mark)
    ]
    if declarations:
        out = f'<span style="{_attr(";".join(declarations))}">{out}</span>'
    return out


def _serialize_paragraph(paragraph: Paragraph) -> str:
    style = f' style="text-align:{paragraph.align.value}"' if paragraph.align else ""
    children = "".join(serialize_leaf(leaf) for leaf in paragraph.children)
    return f"<p{style}>{children}</p>"


def _serialize_image(image: Image) -> str:
    declarations = []
    if image.width is not None:
        declarations.append(f"width:{image.width}px")
    if image.height is not None:
        declarations.append(f"height:{image.height}px")
    style = f' style="{";".join(declarations)}"' if declarations else ""
    return f'<img src="{_attr(image.url)}" alt="{_attr(image.alt)}"{style} />'


def serialize_document(doc: Document) -> str:
    """Serialise a document to canonical HTML.

    Raises:
        DocumentInvariantError: The document breaks a tree invariant; no
            HTML is produced.
    """
    check_document(doc)

    parts: list[str] = []
    for block in doc.blocks:
        match block:
            case Paragraph():
                parts.append(_serialize_paragraph(block))
            case Image():
                parts.append(_serialize_image(block))
    return "".join(parts)


def _check_element(element: etree._Element) -> None:
    tag = element.tag
    allowed = _ALLOWED_ATTRIBUTES.get(tag) if isinstance(tag, str) else None
    if allowed is None:
        msg = f"Non-canonical element {tag!r} in output"
        raise DocumentInvariantError(msg)

    extra = set(element.attrib) - allowed
    if extra:
        msg = f"Non-canonical attribute(s) {sorted(extra)} on <{tag}>"
        raise DocumentInvariantError(msg)

    parent = element.getparent()
    is_top_level = parent is not None and parent.tag == "root"
    if (tag in _BLOCK_ELEMENTS) != is_top_level:
        msg = f"<{tag}> is misplaced in the block structure"
        raise DocumentInvariantError(msg)

    if "style" in element.attrib and not element.attrib["style"].strip():
        msg = f'Empty style="" on <{tag}>'
        raise DocumentInvariantError(msg)
    if tag == "img" and not element.attrib.get("src"):
        raise DocumentInvariantError("<img> without src in output")
    if tag == "img" and (len(element) or element.text):
        raise DocumentInvariantError("<img> with content in output")


def verify_canonical_html(html: str) -> None:
    """Check serialised HTML is balanced and inside the canonical vocabulary.

    Raises:
        DocumentInvariantError: With a description of the first problem.
    """
    if not html:
        raise DocumentInvariantError("Serialised document is empty")

    markup = _XML_INVALID_CHARS.sub(" ", html)
    try:
        root = etree.fromstring(f"<root>{markup}</root>")
    except etree.XMLSyntaxError as exc:
        raise DocumentInvariantError(f"Malformed HTML output: {exc}") from exc

    if root.text and root.text.strip():
        raise DocumentInvariantError("Text outside any block in output")
    for element in root.iterdescendants():
        _check_element(element)
        if element.getparent() is root and element.tail and element.tail.strip():
            raise DocumentInvariantError("Text outside any block in output")

    logger.debug("Verified canonical HTML (%d bytes)", len(html))
