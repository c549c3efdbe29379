"""
Team API endpoints, nested under their game.
"""
import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from jeopardy.api.deps import get_db
from jeopardy.core.exceptions import GameException
from jeopardy.schemas import team as team_schemas
from jeopardy.services.room_broadcaster import room_broadcaster
from jeopardy.services.team_service import team_service_obj

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/games/{game_id}",
    tags=["teams"],
    responses={404: {"description": "Game or team not found"}}
)


def announce_team(background_tasks: BackgroundTasks, game_id: int, team) -> None:
    payload = team_schemas.TeamResponse.model_validate(team).model_dump(mode="json", by_alias=True)
    background_tasks.add_task(
        room_broadcaster.broadcast, game_id, "team-updated", {"gameId": game_id, "team": payload}
    )


@router.get("/teams", response_model=List[team_schemas.TeamResponse])
def list_teams(game_id: int, db: Session = Depends(get_db)):
    try:
        return team_service_obj.list_teams(db, game_id)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch teams for game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch teams")


@router.post("/teams", response_model=team_schemas.TeamResponse)
def create_team(
        game_id: int,
        team: team_schemas.TeamCreate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """
    Create a team in the game.

    Every player must already have joined the game. Unless multi-team
    membership is enabled, a player can only be on one team per game.
    """
    try:
        created = team_service_obj.create_team(db, game_id, team.name, team.color, team.player_ids)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to create team in game {game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create team")

    announce_team(background_tasks, game_id, created)
    return created


@router.put("/teams/{team_id}", response_model=team_schemas.TeamResponse)
def update_team(
        game_id: int,
        team_id: int,
        team: team_schemas.TeamUpdate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """Rename a team and replace its player list."""
    try:
        updated = team_service_obj.update_team(
            db, game_id, team_id, team.name, team.color, team.player_ids
        )
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to update team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update team")

    announce_team(background_tasks, game_id, updated)
    return updated


@router.patch("/teams/{team_id}/score", response_model=team_schemas.TeamResponse)
def update_team_score(
        game_id: int,
        team_id: int,
        update: team_schemas.TeamScoreUpdate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    try:
        updated = team_service_obj.update_team_score(db, game_id, team_id, update.score)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to update score of team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update team score")

    announce_team(background_tasks, game_id, updated)
    return updated


@router.delete("/teams/{team_id}/players/{player_id}", response_model=team_schemas.PlayerRemoval)
def remove_player_from_team(
        game_id: int,
        team_id: int,
        player_id: int,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """Remove one player from one team of this game."""
    try:
        removed = team_service_obj.remove_player_from_team(db, game_id, team_id, player_id)
        teams = team_service_obj.list_teams(db, game_id)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to remove player {player_id} from team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove player from team")

    for team in teams:
        if team.id == team_id:
            announce_team(background_tasks, game_id, team)
    return {"game_id": game_id, "player_id": player_id, "removed": removed}


@router.delete("/players/{player_id}/teams", response_model=team_schemas.PlayerRemoval)
def remove_player_from_all_teams(
        game_id: int,
        player_id: int,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """Remove a player from every team linked to this game."""
    try:
        removed = team_service_obj.remove_player_from_all_teams(db, game_id, player_id)
        teams = team_service_obj.list_teams(db, game_id)
    except GameException:
        raise
    except Exception as e:
        logger.error(f"Failed to remove player {player_id} from teams: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove player from teams")

    if removed:
        for team in teams:
            announce_team(background_tasks, game_id, team)
    return {"game_id": game_id, "player_id": player_id, "removed": removed}
