"""Image upload validation and data-URL conversion.

Validation happens before any bytes are read or the document is touched.
Reading and encoding run off the event loop; the editor decides what to
do with the result once it arrives.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from briefcraft.richtext.errors import FileValidationError

if TYPE_CHECKING:
    from briefcraft.config import EditorConfig

logger = logging.getLogger(__name__)

_EXTENSION_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
}


@dataclass
class ImageUpload:
    """A file picked by the user, held in memory or on disk."""

    filename: str
    data: bytes | None = None
    path: Path | None = None

    @property
    def extension(self) -> str:
        return self.filename.lower().rsplit(".", 1)[-1] if "." in self.filename else ""

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        if self.path is not None:
            try:
                return self.path.stat().st_size
            except OSError as exc:
                raise self._unreadable() from exc
        return 0

    async def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            msg = f"Upload {self.filename!r} has no content"
            raise FileValidationError(msg)
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as exc:
            raise self._unreadable() from exc

    def _unreadable(self) -> FileValidationError:
        msg = f"Could not read {self.filename}. Please choose the file again."
        return FileValidationError(msg)


def sniff_image_type(content: bytes) -> str | None:
    """Detect an image MIME type from magic bytes. None if not an image."""
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if content.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if content.startswith(b"RIFF") and content[8:12] == b"WEBP":
        return "image/webp"
    if content.startswith(b"BM"):
        return "image/bmp"
    head = content[:1024].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    return None


def _allowed_names(config: EditorConfig) -> str:
    allowed = config.allowed_image_types
    return ", ".join(
        sorted(f".{ext}" for ext, mime in _EXTENSION_TYPES.items() if mime in allowed)
    )


def validate_image_upload(upload: ImageUpload, config: EditorConfig) -> str:
    """Check the file name and size of an upload.

    Returns:
        The MIME type implied by the extension.

    Raises:
        FileValidationError: Not a recognised image type, or too large.
    """
    mime = _EXTENSION_TYPES.get(upload.extension)
    if mime is None or mime not in config.allowed_image_types:
        msg = f"Invalid image file. Please upload {_allowed_names(config)} files."
        raise FileValidationError(msg)

    if upload.size > config.max_image_bytes:
        limit_mb = config.max_image_bytes / (1024 * 1024)
        msg = f"Image file is too large. Maximum size is {limit_mb:g}MB."
        raise FileValidationError(msg)

    if upload.size == 0:
        raise FileValidationError("Image file is empty.")
    return mime


def _encode(content: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


async def read_image_as_data_url(upload: ImageUpload, config: EditorConfig) -> str:
    """Validate, read and encode an upload as a ``data:`` URL.

    The content is sniffed after reading; a file whose bytes are not an
    allowed image is rejected even if its name looks right.

    Raises:
        FileValidationError: The upload is not an acceptable image.
    """
    validate_image_upload(upload, config)
    content = await upload.read()
    if len(content) > config.max_image_bytes:
        limit_mb = config.max_image_bytes / (1024 * 1024)
        msg = f"Image file is too large. Maximum size is {limit_mb:g}MB."
        raise FileValidationError(msg)

    mime = sniff_image_type(content)
    if mime is None or mime not in config.allowed_image_types:
        msg = f"{upload.filename} is not a recognised image."
        raise FileValidationError(msg)

    data_url = await asyncio.to_thread(_encode, content, mime)
    logger.info(
        "[UPLOAD] %s: type=%s, size=%d bytes (%.1f KB)",
        upload.filename,
        mime,
        len(content),
        len(content) / 1024,
    )
    return data_url
