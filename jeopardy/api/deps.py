"""
Dependency injection for API endpoints.
"""
from typing import Generator, Optional

from fastapi import Header, Query

from jeopardy.core.database import SessionLocal
from jeopardy.services.spotify_client import SpotifyClient, spotify_client


def get_db() -> Generator:
    """
    Database dependency that ensures proper session cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_spotify_client() -> SpotifyClient:
    return spotify_client


def get_access_token(
        authorization: Optional[str] = Header(None),
        access_token: Optional[str] = Query(None)
) -> Optional[str]:
    """Provider token from a Bearer header, falling back to the query string."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return access_token
