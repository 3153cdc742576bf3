"""Spotify OAuth 2.0 authorization-code flow (confidential client).

Flow:
  1. GET /login          → set state cookie, redirect to Spotify /authorize
  2. GET /callback       → check state, exchange code for tokens via /api/token
  3. Tokens are handed to the browser in the URL fragment, never stored here
  4. GET /refresh_token  → swap a refresh token for a fresh access token
"""

from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

import httpx
import pydantic
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from core.errors import AuthExchangeError, StateMismatchError, ValidationError
from core.models import TokenPair, UserProfile
from sporacle.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

STATE_COOKIE = "spotify_auth_state"
_STATE_LENGTH = 16
_STATE_MAX_AGE = 600  # seconds

_SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
_SPOTIFY_ME_URL = "https://api.spotify.com/v1/me"

_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


# ---------------------------------------------------------------------------
# State token
# ---------------------------------------------------------------------------

def generate_random_string(length: int) -> str:
    """Random hex string of exactly *length* chars from the OS CSPRNG."""
    if length < 0:
        raise ValueError("length must not be negative")
    return secrets.token_hex((length + 1) // 2)[:length]


def check_state(state: str | None, stored_state: str | None) -> None:
    """Raise ``StateMismatchError`` unless *state* equals the stored cookie."""
    if not state or not stored_state:
        raise StateMismatchError()
    if not secrets.compare_digest(state.encode(), stored_state.encode()):
        raise StateMismatchError()


# ---------------------------------------------------------------------------
# Token endpoint client
# ---------------------------------------------------------------------------

class SpotifyOAuthClient:
    """Talks to the Spotify accounts service with the app's client credentials.

    Every failure (non-200, network error, unexpected body) surfaces as
    ``AuthExchangeError`` carrying the upstream status only.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=_TIMEOUT)

    @property
    def _basic_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self._settings.spotify_client_id, self._settings.spotify_client_secret)

    def authorize_url(self, state: str) -> str:
        """Spotify /authorize URL for this login attempt."""
        params = {
            "response_type": "code",
            "client_id": self._settings.spotify_client_id,
            "scope": self._settings.spotify_scopes,
            "redirect_uri": self._settings.redirect_uri,
            "state": state,
        }
        return f"{_SPOTIFY_AUTH_URL}?{urlencode(params)}"

    async def _post_token(self, form: dict) -> dict:
        try:
            async with self._client() as client:
                resp = await client.post(_SPOTIFY_TOKEN_URL, data=form, auth=self._basic_auth)
        except httpx.HTTPError as exc:
            raise AuthExchangeError() from exc

        if resp.status_code != 200:
            raise AuthExchangeError(upstream_status=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise AuthExchangeError(upstream_status=resp.status_code) from exc
        if not isinstance(data, dict):
            raise AuthExchangeError(upstream_status=resp.status_code)
        return data

    async def exchange_code(self, code: str, redirect_uri: str | None = None) -> TokenPair:
        """Swap an authorization code for an access/refresh token pair."""
        data = await self._post_token(
            {
                "code": code,
                "redirect_uri": redirect_uri or self._settings.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        try:
            return TokenPair.model_validate(data)
        except pydantic.ValidationError as exc:
            raise AuthExchangeError(upstream_status=200) from exc

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """Use *refresh_token* to get a new access token.

        Spotify does not always rotate refresh tokens; the old one is kept
        when the response omits it.
        """
        data = await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        data["refresh_token"] = data.get("refresh_token") or refresh_token
        try:
            return TokenPair.model_validate(data)
        except pydantic.ValidationError as exc:
            raise AuthExchangeError(upstream_status=200) from exc

    async def fetch_profile(self, access_token: str) -> UserProfile:
        """GET /v1/me, used to confirm the token works."""
        try:
            async with self._client() as client:
                resp = await client.get(
                    _SPOTIFY_ME_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise AuthExchangeError("Failed to fetch Spotify profile") from exc

        if resp.status_code != 200:
            raise AuthExchangeError("Failed to fetch Spotify profile", upstream_status=resp.status_code)

        try:
            return UserProfile.model_validate(resp.json())
        except (ValueError, pydantic.ValidationError) as exc:
            raise AuthExchangeError("Failed to fetch Spotify profile", upstream_status=200) from exc


def get_oauth_client(settings: Settings = Depends(get_settings)) -> SpotifyOAuthClient:
    """FastAPI dependency; overridden in tests."""
    return SpotifyOAuthClient(settings)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _fragment_redirect(**params: str) -> RedirectResponse:
    """Redirect to the front page with *params* in the URL fragment.

    The state cookie is single use, so it is cleared on every outcome.
    """
    response = RedirectResponse(f"/#{urlencode(params)}", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/login")
async def login(
    settings: Settings = Depends(get_settings),
    oauth: SpotifyOAuthClient = Depends(get_oauth_client),
):
    """Start the Spotify login flow."""
    if not settings.spotify_client_id:
        raise HTTPException(status_code=500, detail="SPOTIFY_CLIENT_ID not set")

    state = generate_random_string(_STATE_LENGTH)
    response = RedirectResponse(oauth.authorize_url(state), status_code=302)
    response.set_cookie(STATE_COOKIE, state, max_age=_STATE_MAX_AGE, httponly=True, samesite="lax")
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth: SpotifyOAuthClient = Depends(get_oauth_client),
):
    """Handle Spotify's redirect after the user authorizes (or refuses)."""
    try:
        check_state(state, request.cookies.get(STATE_COOKIE))
    except StateMismatchError:
        logger.warning("OAuth state mismatch on callback")
        return _fragment_redirect(error="state_mismatch")

    if error or not code:
        logger.warning("Callback without authorization code (provider error reported: %s)", bool(error))
        return _fragment_redirect(error="invalid_token")

    try:
        tokens = await oauth.exchange_code(code)
    except AuthExchangeError as exc:
        logger.warning("Token exchange failed (status %s)", exc.upstream_status)
        return _fragment_redirect(error="invalid_token")

    # Profile lookup is telemetry only; a failure here must not block the login.
    try:
        profile = await oauth.fetch_profile(tokens.access_token)
        logger.info("User logged in: %s", profile.id)
    except AuthExchangeError as exc:
        logger.warning("Profile lookup failed after login (status %s)", exc.upstream_status)

    return _fragment_redirect(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


@router.get("/refresh_token")
async def refresh_token(
    refresh_token: str | None = None,
    oauth: SpotifyOAuthClient = Depends(get_oauth_client),
):
    """Swap a refresh token for a new access token."""
    if not refresh_token:
        raise ValidationError("refresh_token is required")

    try:
        tokens = await oauth.refresh_token(refresh_token)
    except AuthExchangeError as exc:
        logger.warning("Refresh token error (status %s)", exc.upstream_status)
        raise HTTPException(status_code=500, detail="Failed to refresh token") from exc

    return JSONResponse(
        {
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
        }
    )
