"""
Background consistency jobs for maintaining lobby and results integrity.
"""
import logging
from datetime import datetime
from typing import Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from jeopardy.core.config import settings
from jeopardy.core.game_config import GameStatus
from jeopardy.models.game import Game
from jeopardy.models.game_player import GamePlayer
from jeopardy.models.game_result import GameResult
from jeopardy.models.team import TeamPlayer, game_teams

logger = logging.getLogger(__name__)


class ConsistencyManager:
    """Offline repairs and audits of lobby, team and results data."""

    def __init__(self, db: Session):
        self.db = db

    def reconcile_player_counts(self, batch_size: int = 1000) -> Dict[str, Any]:
        """
        Recompute the denormalized games.player_count from game_players.
        The join path keeps them in step; this repairs rows written by hand.
        """
        logger.info("Starting player count reconciliation")

        stats = {
            "total_games": 0,
            "updated_games": 0,
            "errors": 0,
            "start_time": datetime.now(),
            "batches_processed": 0
        }

        try:
            stats["total_games"] = self.db.query(func.count(Game.id)).scalar()

            offset = 0
            while True:
                games = self.db.query(Game).order_by(Game.id).offset(offset).limit(batch_size).all()
                if not games:
                    break

                ids = [g.id for g in games]
                actual = dict(
                    self.db.query(GamePlayer.game_id, func.count(GamePlayer.id))
                    .filter(GamePlayer.game_id.in_(ids))
                    .group_by(GamePlayer.game_id)
                    .all()
                )

                batch_updated = 0
                for game in games:
                    count = actual.get(game.id, 0)
                    if game.player_count != count:
                        logger.debug(f"Game {game.id}: player_count {game.player_count} -> {count}")
                        game.player_count = count
                        batch_updated += 1

                try:
                    self.db.commit()
                    stats["updated_games"] += batch_updated
                    stats["batches_processed"] += 1
                except Exception as e:
                    logger.error(f"Failed to commit player counts for games {ids[0]}-{ids[-1]}: {e}")
                    self.db.rollback()
                    stats["errors"] += len(games)

                offset += batch_size

        except Exception as e:
            logger.error(f"Player count reconciliation aborted: {e}")
            stats["errors"] += 1

        finally:
            stats["end_time"] = datetime.now()
            stats["duration"] = stats["end_time"] - stats["start_time"]

        logger.info(
            f"Player counts reconciled: "
            f"{stats['updated_games']} updated, "
            f"{stats['errors']} errors, "
            f"duration: {stats['duration']}"
        )

        return stats

    def validate_data_integrity(self) -> Dict[str, Any]:
        """Run every audit; each check returns a list of offending rows."""
        logger.info("Auditing game data")

        issues = {
            "over_capacity_games": self._check_over_capacity(),
            "completed_without_results": self._check_completed_without_results(),
            "foreign_results": self._check_foreign_results(),
            "multi_team_players": self._check_multi_team_players(),
        }

        total_issues = sum(len(issue_list) for issue_list in issues.values())

        logger.info(f"Audit found {total_issues} issues")

        return {
            "timestamp": datetime.now(),
            "total_issues": total_issues,
            "issues": issues
        }

    def _check_over_capacity(self) -> list:
        """Games holding more players than max_players allows."""
        counts = self.db.query(
            GamePlayer.game_id,
            func.count(GamePlayer.id).label("players")
        ).group_by(GamePlayer.game_id).subquery()

        rows = self.db.query(Game.id, Game.max_players, counts.c.players).join(
            counts, counts.c.game_id == Game.id
        ).filter(counts.c.players > Game.max_players).all()

        issues = [
            {"game_id": game_id, "max_players": max_players, "players": players}
            for game_id, max_players, players in rows
        ]
        if issues:
            logger.warning(f"Found {len(issues)} games over capacity")
        return issues

    def _check_completed_without_results(self) -> list:
        rows = self.db.query(Game.id).outerjoin(
            GameResult, GameResult.game_id == Game.id
        ).filter(
            Game.status == GameStatus.COMPLETED.value,
            GameResult.id.is_(None)
        ).all()

        issues = [{"game_id": game_id, "issue": "completed_game_no_results"} for game_id, in rows]
        if issues:
            logger.warning(f"Found {len(issues)} completed games without results")
        return issues

    def _check_foreign_results(self) -> list:
        """Results whose player belongs to a different game."""
        rows = self.db.query(GameResult.id, GameResult.game_id, GameResult.player_id).join(
            GamePlayer, GamePlayer.id == GameResult.player_id
        ).filter(GamePlayer.game_id != GameResult.game_id).all()

        issues = [
            {"result_id": result_id, "game_id": game_id, "player_id": player_id}
            for result_id, game_id, player_id in rows
        ]
        if issues:
            logger.warning(f"Found {len(issues)} results for players outside their game")
        return issues

    def _check_multi_team_players(self) -> list:
        """Players on more than one team of the same game, when that is disallowed."""
        if settings.ALLOW_MULTI_TEAM_MEMBERSHIP:
            return []

        rows = self.db.query(
            game_teams.c.game_id,
            TeamPlayer.player_id,
            func.count(TeamPlayer.team_id).label("teams")
        ).join(
            TeamPlayer, TeamPlayer.team_id == game_teams.c.team_id
        ).group_by(
            game_teams.c.game_id, TeamPlayer.player_id
        ).having(func.count(TeamPlayer.team_id) > 1).all()

        issues = [
            {"game_id": game_id, "player_id": player_id, "teams": teams}
            for game_id, player_id, teams in rows
        ]
        if issues:
            logger.warning(f"Found {len(issues)} players on several teams of one game")
        return issues
