"""Tests for image upload validation and data-URL conversion."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import pytest

from briefcraft.config import EditorConfig
from briefcraft.richtext.errors import FileValidationError
from briefcraft.richtext.uploads import (
    ImageUpload,
    read_image_as_data_url,
    sniff_image_type,
    validate_image_upload,
)

if TYPE_CHECKING:
    from pathlib import Path

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16


class TestSniffImageType:
    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            (PNG_BYTES, "image/png"),
            (JPEG_BYTES, "image/jpeg"),
            (b"GIF89a...", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"BM\x00\x00", "image/bmp"),
            (b"  <svg xmlns='http://www.w3.org/2000/svg'/>", "image/svg+xml"),
            (b"<?xml version='1.0'?><svg/>", "image/svg+xml"),
            (b"%PDF-1.7", None),
            (b"", None),
        ],
    )
    def test_detects_magic_bytes(self, content: bytes, expected: str | None) -> None:
        assert sniff_image_type(content) == expected


class TestValidateImageUpload:
    def test_accepts_known_extension(self, editor_config: EditorConfig) -> None:
        upload = ImageUpload("Photo.JPG", data=JPEG_BYTES)
        assert validate_image_upload(upload, editor_config) == "image/jpeg"

    @pytest.mark.parametrize("filename", ["font.woff2", "notes.txt", "no_extension"])
    def test_rejects_other_files(
        self, filename: str, editor_config: EditorConfig
    ) -> None:
        with pytest.raises(FileValidationError, match="Invalid image file"):
            validate_image_upload(ImageUpload(filename, data=PNG_BYTES), editor_config)

    def test_message_lists_allowed_types(self) -> None:
        config = EditorConfig(allowed_image_types=("image/png", "image/gif"))
        with pytest.raises(FileValidationError) as exc_info:
            validate_image_upload(ImageUpload("a.webp", data=b"x"), config)
        assert str(exc_info.value) == (
            "Invalid image file. Please upload .gif, .png files."
        )

    def test_rejects_oversized_file(self) -> None:
        config = EditorConfig(max_image_bytes=1024 * 1024)
        upload = ImageUpload("big.png", data=b"\x00" * (1024 * 1024 + 1))
        with pytest.raises(FileValidationError) as exc_info:
            validate_image_upload(upload, config)
        assert str(exc_info.value) == "Image file is too large. Maximum size is 1MB."

    def test_rejects_empty_file(self, editor_config: EditorConfig) -> None:
        with pytest.raises(FileValidationError, match="empty"):
            validate_image_upload(ImageUpload("a.png", data=b""), editor_config)

    def test_size_of_file_on_disk(
        self, tmp_path: Path, editor_config: EditorConfig
    ) -> None:
        path = tmp_path / "pic.png"
        path.write_bytes(PNG_BYTES)
        upload = ImageUpload("pic.png", path=path)
        assert upload.size == len(PNG_BYTES)
        assert validate_image_upload(upload, editor_config) == "image/png"


    def test_missing_file_is_a_validation_error(
        self, tmp_path: Path, editor_config: EditorConfig
    ) -> None:
        upload = ImageUpload("gone.png", path=tmp_path / "gone.png")
        with pytest.raises(FileValidationError, match="Could not read gone.png"):
            validate_image_upload(upload, editor_config)


class TestReadImageAsDataUrl:
    @pytest.mark.asyncio
    async def test_in_memory_upload(self, editor_config: EditorConfig) -> None:
        data_url = await read_image_as_data_url(
            ImageUpload("a.png", data=PNG_BYTES), editor_config
        )
        assert data_url == (
            "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
        )

    @pytest.mark.asyncio
    async def test_upload_on_disk(
        self, tmp_path: Path, editor_config: EditorConfig
    ) -> None:
        path = tmp_path / "pic.jpeg"
        path.write_bytes(JPEG_BYTES)
        data_url = await read_image_as_data_url(
            ImageUpload("pic.jpeg", path=path), editor_config
        )
        assert data_url.startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_content_type_wins_over_extension(
        self, editor_config: EditorConfig
    ) -> None:
        """A JPEG saved as .png is encoded with its real type."""
        data_url = await read_image_as_data_url(
            ImageUpload("mislabelled.png", data=JPEG_BYTES), editor_config
        )
        assert data_url.startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_non_image_content_is_rejected(
        self, editor_config: EditorConfig
    ) -> None:
        with pytest.raises(FileValidationError, match="not a recognised image"):
            await read_image_as_data_url(
                ImageUpload("fake.png", data=b"%PDF-1.7 ..."), editor_config
            )

    @pytest.mark.asyncio
    async def test_upload_without_content(self, editor_config: EditorConfig) -> None:
        upload = ImageUpload("ghost.png")
        with pytest.raises(FileValidationError):
            await read_image_as_data_url(upload, editor_config)
