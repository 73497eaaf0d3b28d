"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/briefcraft/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class EditorConfig(BaseModel):
    """Image sizing and upload limits for the rich-text editor."""

    image_min_width: int = 50
    image_max_width: int = 800
    # Base used when resizing an image that has no explicit width yet
    image_default_width: int = 300
    image_resize_step: int = 20
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_image_types: tuple[str, ...] = (
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/svg+xml",
    )

    @model_validator(mode="after")
    def bounds_are_ordered(self) -> EditorConfig:
        if self.image_min_width < 1:
            msg = "EDITOR__IMAGE_MIN_WIDTH must be a positive integer"
            raise ValueError(msg)
        if self.image_min_width > self.image_max_width:
            msg = "EDITOR__IMAGE_MIN_WIDTH must not exceed EDITOR__IMAGE_MAX_WIDTH"
            raise ValueError(msg)
        return self

    def clamp_dimension(self, value: int) -> int:
        """Clamp an image dimension into the configured bounds."""
        return max(self.image_min_width, min(self.image_max_width, value))


class FontConfig(BaseModel):
    """Web font stylesheet configuration."""

    stylesheet_base_url: str = "https://fonts.googleapis.com/css2"
    google_families: tuple[str, ...] = (
        "Inter",
        "Roboto",
        "Open Sans",
        "Lato",
        "Montserrat",
        "Raleway",
        "Source Sans Pro",
        "Poppins",
        "Merriweather",
        "Playfair Display",
        "Oswald",
        "Roboto Condensed",
        "Ubuntu",
        "Lora",
        "Roboto Slab",
        "Noto Sans",
        "PT Sans",
        "Titillium Web",
        "Dosis",
        "Arimo",
        "PT Serif",
        "Crimson Text",
        "Fira Sans",
        "Work Sans",
        "Nunito",
        "Cabin",
        "Inconsolata",
    )
    weights: tuple[int, ...] = (400, 700)


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``EDITOR__IMAGE_MAX_WIDTH``, ``FONTS__STYLESHEET_BASE_URL``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    editor: EditorConfig = EditorConfig()
    fonts: FontConfig = FontConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
