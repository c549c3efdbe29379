from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class ArtistRef(BaseModel):
    id: Optional[str] = None
    name: str


class AlbumRef(BaseModel):
    id: Optional[str] = None
    name: str
    images: List[Dict[str, Any]] = []


class Track(BaseModel):
    id: str
    name: str
    artists: List[ArtistRef] = []
    album: Optional[AlbumRef] = None
    preview_url: Optional[str] = None
    duration_ms: Optional[int] = None
    popularity: Optional[int] = None
    external_urls: Dict[str, str] = {}


class TrackSearchResponse(BaseModel):
    tracks: List[Track]


class AuthorizeResponse(BaseModel):
    url: str
    state: str


class CatalogStatus(BaseModel):
    configured: bool


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)
