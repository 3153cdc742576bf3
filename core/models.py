"""Pydantic models shared across the application."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class TokenPair(BaseModel):
    """Tokens returned by the Spotify token endpoint, never persisted."""

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: Optional[int] = None  # seconds
    scope: str = ""

    model_config = {"extra": "ignore"}


class UserProfile(BaseModel):
    """Subset of ``/v1/me`` we care about. Only ``id`` is ever logged."""

    id: str
    display_name: Optional[str] = None

    model_config = {"extra": "ignore"}


class CompletionRequest(BaseModel):
    """Body of ``POST /generate-response``."""

    trackNames: List[str]
    artistNames: List[str]


class CompletionResult(BaseModel):
    """Generated reading, passed through verbatim."""

    response: str


class TopItems(BaseModel):
    """Response of ``GET /api/top-tracks-and-artists``."""

    topTracks: List[dict] = Field(default_factory=list)
    topArtists: List[dict] = Field(default_factory=list)
