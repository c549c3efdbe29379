from pydantic_settings import BaseSettings
import os
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./jeopardy.db"
    )
    DEBUG: bool = os.getenv("DEBUG", "True") == "True"
    DB_TIMEOUT: float = 10.0  # seconds

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: List[str] = ["*"]

    # Lobby rules
    DEFAULT_MAX_PLAYERS: int = 4
    ALLOW_MULTI_TEAM_MEMBERSHIP: bool = False

    # Realtime
    BROADCAST_SEND_TIMEOUT: float = 2.0  # seconds
    BROADCAST_MAX_TIMEOUTS: int = 3  # consecutive timeouts before a member is dropped

    # Spotify catalog
    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""
    SPOTIFY_REDIRECT_URI: str = "http://localhost:8000/api/spotify/callback"
    SPOTIFY_API_URL: str = "https://api.spotify.com/v1"
    SPOTIFY_ACCOUNTS_URL: str = "https://accounts.spotify.com"
    PROVIDER_TIMEOUT: float = 10.0
    PROVIDER_MAX_RETRIES: int = 3
    PROVIDER_BACKOFF: float = 0.5

    class Config:
        env_file = ".env"

settings = Settings()
