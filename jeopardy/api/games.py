"""
Game-related API endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from jeopardy.api.deps import get_db
from jeopardy.core.exceptions import GameException
from jeopardy.schemas import game as game_schemas
from jeopardy.services.game_service import game_service_obj
from jeopardy.services.room_broadcaster import room_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/games",
    tags=["games"],
    responses={404: {"description": "Game not found"}}
)


def player_payload(player) -> dict:
    return game_schemas.PlayerResponse.model_validate(player).model_dump(mode="json", by_alias=True)


@router.post("", response_model=game_schemas.GameResponse)
def create_game(
        game: game_schemas.GameCreate,
        db: Session = Depends(get_db)
):
    """
    Create a new game lobby.

    The game starts in 'WAITING' status with no players.
    maxPlayers defaults to 4.
    """
    try:
        return game_service_obj.create_game(db, game.title, game.question, game.max_players)
    except Exception as e:
        logger.error(f"Failed to create game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create game")


@router.get("", response_model=List[game_schemas.GameResponse])
def list_games(db: Session = Depends(get_db)):
    """List all games with their players and player counts, newest first."""
    try:
        return game_service_obj.list_games(db)
    except Exception as e:
        logger.error(f"Failed to fetch games: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch games")


@router.get("/history", response_model=List[game_schemas.GameDetail])
def get_game_history(db: Session = Depends(get_db)):
    """Completed games with their ranked results, most recently finished first."""
    try:
        return game_service_obj.list_completed_games(db)
    except Exception as e:
        logger.error(f"Failed to fetch game history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch game history")


@router.get("/{game_id}", response_model=game_schemas.GameDetail)
def get_game(
        game_id: int,
        db: Session = Depends(get_db)
):
    """
    Get a game with its players and results.

    Results are ordered by position, winner first.
    """
    try:
        return game_service_obj.get_game(db, game_id)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch game")


@router.patch("/{game_id}", response_model=game_schemas.GameDetail)
def update_game(
        game_id: int,
        update: game_schemas.GameUpdate,
        db: Session = Depends(get_db)
):
    """
    Advance the game status and/or record its results.

    Status only moves forward: WAITING -> IN_PROGRESS -> COMPLETED.
    Results can be recorded once, for a COMPLETED game, and may be sent
    in the same request that completes it.
    """
    try:
        return game_service_obj.update_game(
            db, game_id, status=update.status, results=update.results
        )
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to update game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update game")


@router.post("/{game_id}/join", response_model=game_schemas.GameResponse)
def join_game(
        game_id: int,
        join: game_schemas.JoinGame,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """
    Join a lobby under a display name.

    Fails when:
    - the game does not exist (404)
    - the game is full (400)
    - the game already started (400)
    - the name is already taken in this game (400)
    """
    try:
        game = game_service_obj.join_game(db, game_id, join.player_name)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to join game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to join game")

    player = next(p for p in reversed(game.players) if p.name == join.player_name)
    background_tasks.add_task(
        room_broadcaster.broadcast, game_id, "player-updated",
        {"gameId": game_id, "player": player_payload(player)}
    )
    return game


@router.patch("/{game_id}/players/{player_id}/avatar", response_model=game_schemas.PlayerResponse)
def update_player_avatar(
        game_id: int,
        player_id: int,
        avatar: game_schemas.AvatarUpdate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """Set a player's avatar URL and let the rest of the room know."""
    try:
        player = game_service_obj.update_player_avatar(db, game_id, player_id, avatar.avatar_url)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to update avatar for player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update avatar")

    background_tasks.add_task(
        room_broadcaster.broadcast, game_id, "avatar-updated",
        {"gameId": game_id, "playerId": player_id, "avatarUrl": player.avatar_url}
    )
    return player
