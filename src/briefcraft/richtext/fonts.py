"""Font options and the web font stylesheet.

The host supplies a font list (strings or ``{"label", "value"}`` mappings);
the editor only treats it as the set of font-family values it offers. No
font is checked for existence and nothing here touches the network.

The Google Fonts ``<link>`` used to be appended to the page head globally.
Here it is a scoped resource: each editor acquires it on mount and
releases it on unmount, and :class:`PageHead` reference-counts links so
coexisting editors share one tag.
"""

from __future__ import annotations

import html as html_module
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote_plus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType

    from briefcraft.config import FontConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontOption:
    """A font-family choice offered to the user."""

    label: str
    value: str


DEFAULT_FONTS: tuple[FontOption, ...] = (
    FontOption("Arial", "Arial, sans-serif"),
    FontOption("Times New Roman", '"Times New Roman", serif'),
    FontOption("Courier New", '"Courier New", monospace'),
    FontOption("Georgia", "Georgia, serif"),
    FontOption("Verdana", "Verdana, sans-serif"),
)

FONT_SIZES: tuple[str, ...] = (
    "8pt",
    "10pt",
    "12pt",
    "14pt",
    "16pt",
    "18pt",
    "20pt",
    "24pt",
    "28pt",
    "32pt",
)


def normalise_font_options(
    fonts: Sequence[FontOption | Mapping[str, str] | str] | None,
) -> list[FontOption]:
    """Turn a host-supplied font list into FontOptions.

    Strings become options labelled with themselves; mappings need a
    ``value`` and fall back to it for ``label``. Blank entries and
    duplicate values are skipped. An empty list yields DEFAULT_FONTS.
    """
    options: list[FontOption] = []
    seen: set[str] = set()
    for font in fonts or ():
        match font:
            case FontOption():
                option = font
            case str():
                option = FontOption(label=font.strip(), value=font.strip())
            case Mapping():
                value = str(font.get("value") or "").strip()
                label = str(font.get("label") or value).strip()
                option = FontOption(label=label, value=value)
            case _:
                logger.warning("Ignoring font entry of type %s", type(font).__name__)
                continue
        if not option.value or option.value in seen:
            continue
        seen.add(option.value)
        options.append(option)
    return options or list(DEFAULT_FONTS)


def build_google_fonts_url(
    families: Iterable[str], weights: Iterable[int], base_url: str
) -> str:
    """Build a Google Fonts css2 URL loading every family at every weight."""
    weight_spec = ";".join(str(w) for w in sorted(set(weights)))
    params = [f"family={quote_plus(name)}:wght@{weight_spec}" for name in families]
    params.append("display=swap")
    return f"{base_url}?{'&'.join(params)}"


def stylesheet_url(config: FontConfig) -> str:
    return build_google_fonts_url(
        config.google_families, config.weights, config.stylesheet_base_url
    )


class PageHead:
    """Stylesheet links present in the host page head.

    Links are reference counted: a link stays in the head while at least
    one holder has acquired it.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def acquire(self, href: str) -> None:
        count = self._counts.get(href, 0)
        if count == 0:
            logger.debug("Adding stylesheet link %s", href[:80])
        self._counts[href] = count + 1

    def release(self, href: str) -> None:
        count = self._counts.get(href, 0)
        if count <= 1:
            if self._counts.pop(href, None) is not None:
                logger.debug("Removing stylesheet link %s", href[:80])
            return
        self._counts[href] = count - 1

    @property
    def links(self) -> list[str]:
        return list(self._counts)

    def holders(self, href: str) -> int:
        return self._counts.get(href, 0)

    def render(self) -> str:
        """HTML for the current links, in acquisition order."""
        return "".join(
            f'<link rel="stylesheet" href="{html_module.escape(href)}">'
            for href in self._counts
        )


class FontStylesheet:
    """One holder's claim on a stylesheet link in a PageHead.

    ``acquire`` and ``release`` are idempotent, so a holder can never
    remove a link it did not add or add it twice.
    """

    def __init__(self, head: PageHead, href: str) -> None:
        self.head = head
        self.href = href
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        if not self._held:
            self.head.acquire(self.href)
            self._held = True

    def release(self) -> None:
        if self._held:
            self.head.release(self.href)
            self._held = False

    def __enter__(self) -> FontStylesheet:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
