"""Reading routes: top items lookup and oracle reading generation."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from core.errors import FetchError, RetriesExhausted, UpstreamError, ValidationError
from core.models import CompletionResult, TopItems
from sporacle import spotify
from sporacle.completion import ReadingGenerator, get_reading_generator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reading"])


# ---------------------------------------------------------------------------
# /api/top-tracks-and-artists
# ---------------------------------------------------------------------------

@router.get("/api/top-tracks-and-artists")
async def top_tracks_and_artists(access_token: str | None = None):
    """Return the caller's top 10 tracks and artists (medium term)."""
    if not access_token:
        raise ValidationError("Access token is required")

    try:
        tracks, artists = await asyncio.gather(
            spotify.get_top_tracks(access_token),
            spotify.get_top_artists(access_token),
        )
    except FetchError as exc:
        logger.warning("Failed to fetch top tracks or top artists (status %s)", exc.upstream_status)
        raise HTTPException(status_code=500, detail="Failed to fetch top tracks or top artists") from exc

    return JSONResponse(TopItems(topTracks=tracks, topArtists=artists).model_dump())


# ---------------------------------------------------------------------------
# /generate-response
# ---------------------------------------------------------------------------

@router.post("/generate-response")
async def generate_response(
    request: Request,
    generator: ReadingGenerator = Depends(get_reading_generator),
):
    """Generate an oracle reading from ``{trackNames, artistNames}``."""
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    try:
        text = await generator.build_and_submit(body.get("trackNames"), body.get("artistNames"))
    except (RetriesExhausted, UpstreamError) as exc:
        logger.error("OpenAI error: %s", type(exc).__name__)
        raise HTTPException(status_code=500, detail="Failed to generate response. Please try again.") from exc

    return JSONResponse(CompletionResult(response=text).model_dump())
