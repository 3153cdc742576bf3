"""Spotify Web API helpers for a user's top items.

Functions:
- get_top_items    → ordered list of track or artist objects
- get_top_tracks   → shorthand for kind="tracks"
- get_top_artists  → shorthand for kind="artists"

The caller supplies the access token; nothing here refreshes it.
"""

from __future__ import annotations

import httpx

from core.errors import FetchError, ValidationError

_API_BASE = "https://api.spotify.com/v1"
_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

TOP_KINDS = ("tracks", "artists")
TIME_RANGES = ("short_term", "medium_term", "long_term")
MAX_LIMIT = 50


# ---------------------------------------------------------------------------
# Top items
# ---------------------------------------------------------------------------

async def get_top_items(
    token: str,
    kind: str,
    *,
    limit: int = 10,
    time_range: str = "medium_term",
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    """Return the user's top *kind* items, in the order Spotify ranks them.

    Pass *client* to reuse a connection pool (or a test transport); the
    caller keeps ownership of it. Otherwise a short-lived client is opened.

    Raises ``ValidationError`` for bad arguments (before any request) and
    ``FetchError`` for anything that goes wrong on the wire, expired tokens
    included.
    """
    if not token:
        raise ValidationError("Access token is required")
    if kind not in TOP_KINDS:
        raise ValidationError(f"kind must be one of {', '.join(TOP_KINDS)}")
    if time_range not in TIME_RANGES:
        raise ValidationError(f"time_range must be one of {', '.join(TIME_RANGES)}")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")

    url = f"{_API_BASE}/me/top/{kind}"
    headers = {"Authorization": f"Bearer {token}"}
    params = {"limit": limit, "time_range": time_range}

    try:
        if client is not None:
            resp = await client.get(url, headers=headers, params=params)
        else:
            async with httpx.AsyncClient(timeout=_TIMEOUT) as own_client:
                resp = await own_client.get(url, headers=headers, params=params)
    except httpx.HTTPError as exc:
        raise FetchError() from exc

    if not 200 <= resp.status_code < 300:
        raise FetchError(upstream_status=resp.status_code)

    try:
        items = resp.json().get("items", [])
    except (ValueError, AttributeError) as exc:
        raise FetchError(upstream_status=resp.status_code) from exc

    # Every item must be an object; anything else is a malformed page.
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise FetchError(upstream_status=resp.status_code)
    return items


async def get_top_tracks(
    token: str,
    *,
    limit: int = 10,
    time_range: str = "medium_term",
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    return await get_top_items(token, "tracks", limit=limit, time_range=time_range, client=client)


async def get_top_artists(
    token: str,
    *,
    limit: int = 10,
    time_range: str = "medium_term",
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    return await get_top_items(token, "artists", limit=limit, time_range=time_range, client=client)
