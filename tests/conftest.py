"""Shared pytest fixtures for briefcraft tests."""

from __future__ import annotations

import pytest

from briefcraft.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> None:
    """Make sure no test sees settings cached by another."""
    get_settings.cache_clear()
