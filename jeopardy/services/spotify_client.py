"""
Spotify catalog integration: OAuth code exchange and track search.
"""
import asyncio
import base64
import logging
import secrets
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from jeopardy.core.config import settings
from jeopardy.core.exceptions import InvalidInput, Unauthorized, UpstreamError
from jeopardy.schemas.spotify import TokenResponse, Track

logger = logging.getLogger(__name__)

SCOPES = [
    "streaming",
    "user-read-email",
    "user-read-private",
    "user-read-playback-state",
    "user-modify-playback-state",
]

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class SpotifyClient:
    """Thin async wrapper around the Spotify accounts and Web API."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None,
                 max_retries: int = None, backoff: float = None):
        self.client_id = settings.SPOTIFY_CLIENT_ID
        self.client_secret = settings.SPOTIFY_CLIENT_SECRET
        self.redirect_uri = settings.SPOTIFY_REDIRECT_URI
        self.api_url = settings.SPOTIFY_API_URL.rstrip('/')
        self.accounts_url = settings.SPOTIFY_ACCOUNTS_URL.rstrip('/')
        self.timeout = settings.PROVIDER_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.PROVIDER_MAX_RETRIES
        self.backoff = backoff if backoff is not None else settings.PROVIDER_BACKOFF
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorize_url(self, state: str = None) -> tuple:
        state = state or secrets.token_urlsafe(8)
        query = urlencode({
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(SCOPES),
            "state": state,
        })
        return f"{self.accounts_url}/authorize?{query}", state

    async def exchange_code(self, code: str) -> TokenResponse:
        """Trade an authorization code for tokens. Codes are single-use, so never retried."""
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    async def search_tracks(self, access_token: str, query: str, limit: int = 20) -> List[Track]:
        if not access_token:
            raise Unauthorized("Access token is required")
        if not query:
            raise InvalidInput("Query parameter is required")

        data = await self._get_with_retry(
            "/search",
            params={"q": query, "type": "track", "limit": limit},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        items = (data.get("tracks") or {}).get("items") or []
        return [self._to_track(item) for item in items]

    async def _token_request(self, form: dict) -> TokenResponse:
        if not self.is_configured():
            raise UpstreamError("Spotify client credentials are not configured")

        credentials = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.accounts_url}/api/token",
                    data=form,
                    headers={"Authorization": f"Basic {credentials}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Spotify token request failed: {e}")
            raise UpstreamError("Failed to reach Spotify") from e

        if response.status_code in (400, 401):
            raise Unauthorized("Spotify rejected the authorization grant")
        if response.status_code != 200:
            raise UpstreamError(f"Spotify token request failed with {response.status_code}")
        return TokenResponse(**response.json())

    async def _get_with_retry(self, path: str, params: dict, headers: dict) -> dict:
        """GET with exponential backoff on transport errors, 429 and 5xx."""
        last_error = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning(f"Retrying Spotify {path} in {delay:.2f}s (attempt {attempt + 1}): {last_error}")
                await asyncio.sleep(delay)
            try:
                async with self._client() as client:
                    response = await client.get(f"{self.api_url}{path}", params=params, headers=headers)
            except httpx.HTTPError as e:
                last_error = str(e)
                continue

            if response.status_code == 401:
                raise Unauthorized("Spotify access token is invalid or expired")
            if response.status_code in RETRYABLE_STATUS:
                last_error = f"HTTP {response.status_code}"
                continue
            if response.status_code != 200:
                raise UpstreamError(f"Spotify API error: {response.status_code}")
            return response.json()

        logger.error(f"Spotify {path} failed after {self.max_retries + 1} attempts: {last_error}")
        raise UpstreamError("Failed to search tracks")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _to_track(item: dict) -> Track:
        album = item.get("album") or {}
        return Track(
            id=item["id"],
            name=item.get("name", ""),
            artists=[{"id": a.get("id"), "name": a.get("name", "")} for a in item.get("artists", [])],
            album={
                "id": album.get("id"),
                "name": album.get("name", ""),
                "images": album.get("images", []),
            } if album else None,
            preview_url=item.get("preview_url"),
            duration_ms=item.get("duration_ms"),
            popularity=item.get("popularity"),
            external_urls=item.get("external_urls") or {},
        )


spotify_client = SpotifyClient()
