"""Shared fixtures."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _fake_env(monkeypatch):
    """Provide env vars so Settings can load without a .env file."""
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")
    monkeypatch.setenv("OPENAI_API_KEY", "test_openai_key")
    from sporacle.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
