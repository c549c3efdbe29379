"""
Startup and shutdown hooks run from the application lifespan.
"""
import logging
from sqlalchemy import text

from jeopardy.core.database import engine, Base
# Register every table on Base.metadata
from jeopardy.models import game, game_player, game_result, team  # noqa: F401
from jeopardy.services.room_broadcaster import room_broadcaster

logger = logging.getLogger(__name__)


def initialize_database() -> None:
    """Create missing tables and check the database answers."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info(f"Connected to {engine.url.get_backend_name()} database")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def shutdown_rooms() -> None:
    """Close live game sockets. Room state is in memory only and is lost here."""
    stats = room_broadcaster.stats()
    closed = await room_broadcaster.close_all()
    logger.info(f"Closed {closed} connections across {stats['active_rooms']} rooms")


def shutdown_database() -> None:
    try:
        engine.dispose()
        logger.info("Database engine disposed")
    except Exception as e:
        # Shutdown carries on regardless
        logger.error(f"Error disposing database engine: {e}")
