"""
Team management inside a game: creation, membership and scoring.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from jeopardy.core.config import settings
from jeopardy.core.exceptions import (
    GameNotFound, PlayerNotFound, TeamNotFound, TeamMembershipConflict
)
from jeopardy.models.game import Game
from jeopardy.models.game_player import GamePlayer
from jeopardy.models.team import Team, TeamPlayer, game_teams
from jeopardy.services.game_service import game_service_obj

logger = logging.getLogger(__name__)


class TeamService:
    def __init__(self, allow_multi_team: bool = None):
        # None means "follow settings", so tests can flip the invariant per instance
        self._allow_multi_team = allow_multi_team

    @property
    def allow_multi_team(self) -> bool:
        if self._allow_multi_team is None:
            return settings.ALLOW_MULTI_TEAM_MEMBERSHIP
        return self._allow_multi_team

    def list_teams(self, db: Session, game_id: int) -> List[Team]:
        game = self._get_game(db, game_id)
        return sorted(game.teams, key=lambda t: t.id)

    def create_team(self, db: Session, game_id: int, name: str, color: str,
                    player_ids: List[int]) -> Team:
        with game_service_obj.game_lock(game_id):
            game = self._get_game(db, game_id, for_update=True)

            team = Team(name=name, color=color, score=0)
            team.games.append(game)
            db.add(team)
            db.flush()

            self._set_members(db, game, team, player_ids)
            db.commit()

        db.refresh(team)
        logger.info(f"Team {team.id} '{name}' created in game {game_id} with players {player_ids}")
        return team

    def update_team(self, db: Session, game_id: int, team_id: int, name: str,
                    color: str, player_ids: List[int]) -> Team:
        """Rename/recolor a team and replace its membership set."""
        with game_service_obj.game_lock(game_id):
            game = self._get_game(db, game_id, for_update=True)
            team = self._get_team(db, game, team_id)

            team.name = name
            team.color = color
            self._set_members(db, game, team, player_ids)
            db.commit()

        db.refresh(team)
        logger.info(f"Team {team_id} in game {game_id} updated, players {player_ids}")
        return team

    def update_team_score(self, db: Session, game_id: int, team_id: int, score: int) -> Team:
        with game_service_obj.game_lock(game_id):
            game = self._get_game(db, game_id, for_update=True)
            team = self._get_team(db, game, team_id)

            team.score = score
            db.commit()

        db.refresh(team)
        return team

    def remove_player_from_team(self, db: Session, game_id: int, team_id: int,
                                player_id: int) -> int:
        """Remove one (game, team, player) membership. Returns rows removed."""
        with game_service_obj.game_lock(game_id):
            game = self._get_game(db, game_id, for_update=True)
            self._get_team(db, game, team_id)

            removed = db.query(TeamPlayer).filter(
                TeamPlayer.team_id == team_id,
                TeamPlayer.player_id == player_id
            ).delete(synchronize_session=False)
            db.commit()

        logger.info(f"Removed player {player_id} from team {team_id} in game {game_id} ({removed} rows)")
        return removed

    def remove_player_from_all_teams(self, db: Session, game_id: int, player_id: int) -> int:
        """Bulk removal of a player from every team linked to the game."""
        with game_service_obj.game_lock(game_id):
            self._get_game(db, game_id, for_update=True)

            team_ids = db.query(game_teams.c.team_id).filter(game_teams.c.game_id == game_id)
            removed = db.query(TeamPlayer).filter(
                TeamPlayer.player_id == player_id,
                TeamPlayer.team_id.in_(team_ids)
            ).delete(synchronize_session=False)
            db.commit()

        logger.info(f"Removed player {player_id} from all teams in game {game_id} ({removed} rows)")
        return removed

    def _get_game(self, db: Session, game_id: int, for_update: bool = False) -> Game:
        query = db.query(Game).filter(Game.id == game_id)
        if for_update:
            # Membership checks read other teams of the game before writing
            query = query.with_for_update()
        game = query.first()
        if not game:
            raise GameNotFound("Game not found")
        return game

    def _get_team(self, db: Session, game: Game, team_id: int) -> Team:
        team = db.query(Team).filter(Team.id == team_id).first()
        if not team or game not in team.games:
            raise TeamNotFound(f"Team {team_id} not found in game {game.id}")
        return team

    def _set_members(self, db: Session, game: Game, team: Team, player_ids: List[int]) -> None:
        player_ids = list(dict.fromkeys(player_ids))

        players = db.query(GamePlayer).filter(
            GamePlayer.game_id == game.id,
            GamePlayer.id.in_(player_ids)
        ).all() if player_ids else []
        found = {p.id for p in players}
        missing = [pid for pid in player_ids if pid not in found]
        if missing:
            db.rollback()
            raise PlayerNotFound(f"Players {missing} are not in game {game.id}")

        if not self.allow_multi_team and player_ids:
            other_team_ids = [t.id for t in game.teams if t.id != team.id]
            clash = db.query(TeamPlayer).filter(
                TeamPlayer.team_id.in_(other_team_ids),
                TeamPlayer.player_id.in_(player_ids)
            ).first() if other_team_ids else None
            if clash:
                db.rollback()
                raise TeamMembershipConflict(
                    f"Player {clash.player_id} is already on team {clash.team_id} in this game"
                )

        # Keep rows that survive so the composite keys are never re-inserted
        current = {tp.player_id: tp for tp in team.members}
        team.members = [
            current.get(pid) or TeamPlayer(team_id=team.id, player_id=pid)
            for pid in player_ids
        ]
        db.flush()


team_service_obj = TeamService()
