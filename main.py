"""
Music Jeopardy backend.

Serves the game lobby REST API under /api and the live game room socket
at /ws.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jeopardy.api.router import include_routers
from jeopardy.core.config import settings
from jeopardy.core.exception_handlers import register_exception_handlers
from jeopardy.core.startup import initialize_database, shutdown_database, shutdown_rooms

logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Music Jeopardy starting (debug={settings.DEBUG})")
    initialize_database()

    yield

    # Sockets first, so no handler touches the database after it is disposed
    await shutdown_rooms()
    shutdown_database()
    logger.info("Music Jeopardy stopped")


app = FastAPI(
    title="Music Jeopardy",
    description="""
    Game lobbies, teams, results and live game rooms for Music Jeopardy.

    Game rooms are served over a WebSocket at /ws; every other endpoint
    lives under /api.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_exception_handlers(app)
include_routers(app)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True
    )
