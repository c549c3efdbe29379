"""
Router registration for the Music Jeopardy API.
"""
from fastapi import FastAPI

from jeopardy.api import games, teams, realtime, spotify


def include_routers(app: FastAPI) -> None:
    """Include all API routers with the FastAPI application."""
    app.include_router(games.router, prefix="/api", tags=["games"])
    app.include_router(teams.router, prefix="/api", tags=["teams"])
    app.include_router(realtime.router, prefix="/api", tags=["realtime"])
    app.include_router(spotify.router, prefix="/api", tags=["spotify"])
    # The socket lives at the root so clients connect to /ws
    app.include_router(realtime.ws_router)
