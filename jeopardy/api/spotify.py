"""
Spotify catalog endpoints used by hosts to pick songs.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from jeopardy.api.deps import get_access_token, get_spotify_client
from jeopardy.core.exceptions import InvalidInput, Unauthorized
from jeopardy.schemas import spotify as spotify_schemas
from jeopardy.services.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/spotify",
    tags=["spotify"]
)


@router.get("/login", response_model=spotify_schemas.AuthorizeResponse)
def login(client: SpotifyClient = Depends(get_spotify_client)):
    """Spotify authorization URL the browser should be sent to."""
    url, state = client.authorize_url()
    return {"url": url, "state": state}


@router.get("/callback", response_model=spotify_schemas.TokenResponse)
async def callback(
        code: Optional[str] = None,
        error: Optional[str] = None,
        client: SpotifyClient = Depends(get_spotify_client)
):
    """OAuth redirect target: exchanges the code for access and refresh tokens."""
    if error:
        raise Unauthorized(f"Spotify authorization failed: {error}")
    if not code:
        raise InvalidInput("Missing authorization code")
    return await client.exchange_code(code)


@router.post("/refresh", response_model=spotify_schemas.TokenResponse)
async def refresh(
        request: spotify_schemas.RefreshRequest,
        client: SpotifyClient = Depends(get_spotify_client)
):
    """Trade a refresh token for a new access token."""
    return await client.refresh_token(request.refresh_token)


@router.get("/search", response_model=spotify_schemas.TrackSearchResponse)
async def search(
        q: Optional[str] = None,
        limit: int = Query(20, ge=1, le=50),
        access_token: Optional[str] = Depends(get_access_token),
        client: SpotifyClient = Depends(get_spotify_client)
):
    """
    Search tracks.

    Requires a Spotify access token, either as a Bearer header or the
    access_token query parameter.
    """
    if not q:
        raise InvalidInput("Query parameter is required")
    if not access_token:
        raise Unauthorized("Access token is required")

    tracks = await client.search_tracks(access_token, q, limit)
    logger.info(f"Spotify search '{q}' returned {len(tracks)} tracks")
    return {"tracks": tracks}


@router.get("/status", response_model=spotify_schemas.CatalogStatus)
def status(client: SpotifyClient = Depends(get_spotify_client)):
    return {"configured": client.is_configured()}
