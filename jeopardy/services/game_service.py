import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from jeopardy.core.config import settings
from jeopardy.core.exceptions import (
    GameNotFound, GameFull, GameNotAccepting, PlayerNameTaken,
    PlayerNotFound, ResultsAlreadyRecorded
)
from jeopardy.core.game_config import GameStatus
from jeopardy.models.game import Game
from jeopardy.models.game_player import GamePlayer
from jeopardy.models.game_result import GameResult
from jeopardy.services.validators import GameValidator

logger = logging.getLogger(__name__)


class GameService:
    def __init__(self):
        self.validator = GameValidator()
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def game_lock(self, game_id: int):
        """Serialize writes to one game within this process."""
        with self._locks_guard:
            lock = self._locks.setdefault(game_id, threading.Lock())
        with lock:
            yield

    def create_game(self, db: Session, title: str, question: str,
                    max_players: Optional[int] = None) -> Game:
        game = Game(
            title=title,
            question=question,
            max_players=max_players or settings.DEFAULT_MAX_PLAYERS,
            status=GameStatus.WAITING.value,
            player_count=0
        )
        db.add(game)
        db.commit()
        db.refresh(game)

        logger.info(f"Game {game.id} '{title}' created (max {game.max_players} players)")
        return game

    def join_game(self, db: Session, game_id: int, player_name: str) -> Game:
        with self.game_lock(game_id):
            try:
                game = db.query(Game).filter(
                    Game.id == game_id
                ).with_for_update().first()

                if not game:
                    raise GameNotFound("Game not found")

                self.validator.validate_join(game, player_name)

                # Compare-and-swap on the counter reserves the seat atomically
                reserved = db.query(Game).filter(
                    Game.id == game_id,
                    Game.status == GameStatus.WAITING.value,
                    Game.player_count < Game.max_players
                ).update(
                    {Game.player_count: Game.player_count + 1},
                    synchronize_session=False
                )
                if reserved != 1:
                    db.rollback()
                    game = db.query(Game).filter(Game.id == game_id).first()
                    if game.status != GameStatus.WAITING.value:
                        raise GameNotAccepting("Game is not accepting players")
                    raise GameFull("Game is full")

                db.add(GamePlayer(game_id=game_id, name=player_name))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    raise PlayerNameTaken("Player name already taken")
            except (GameNotFound, GameFull, GameNotAccepting, PlayerNameTaken):
                db.rollback()
                raise

        db.refresh(game)
        logger.info(f"Player '{player_name}' joined game {game_id} ({game.player_count}/{game.max_players})")
        return game

    def update_game_status(self, db: Session, game_id: int, status: GameStatus) -> Game:
        return self.update_game(db, game_id, status=status)

    def record_results(self, db: Session, game_id: int, results: List) -> Game:
        return self.update_game(db, game_id, results=results)

    def update_game(self, db: Session, game_id: int,
                    status: Optional[GameStatus] = None,
                    results: Optional[List] = None) -> Game:
        """Apply a status transition and/or results in a single commit."""
        with self.game_lock(game_id):
            game = db.query(Game).filter(
                Game.id == game_id
            ).with_for_update().first()

            if not game:
                raise GameNotFound("Game not found")

            try:
                if status is not None:
                    self._apply_status(game, status)
                if results:
                    self._stage_results(db, game, results)
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ResultsAlreadyRecorded(f"Results already recorded for game {game_id}")
            except Exception:
                db.rollback()
                raise

        db.refresh(game)
        return game

    def get_game(self, db: Session, game_id: int) -> Game:
        game = db.query(Game).options(
            selectinload(Game.players),
            selectinload(Game.results).selectinload(GameResult.player)
        ).filter(Game.id == game_id).first()
        if not game:
            raise GameNotFound("Game not found")
        return game

    def list_games(self, db: Session) -> List[Game]:
        return db.query(Game).options(
            selectinload(Game.players)
        ).order_by(Game.created_at.desc(), Game.id.desc()).all()

    def list_completed_games(self, db: Session) -> List[Game]:
        return db.query(Game).options(
            selectinload(Game.players),
            selectinload(Game.results).selectinload(GameResult.player)
        ).filter(
            Game.status == GameStatus.COMPLETED.value
        ).order_by(Game.updated_at.desc(), Game.id.desc()).all()

    def update_player_avatar(self, db: Session, game_id: int, player_id: int,
                             avatar_url: str) -> GamePlayer:
        game = db.query(Game).filter(Game.id == game_id).first()
        if not game:
            raise GameNotFound("Game not found")

        player = db.query(GamePlayer).filter(
            GamePlayer.id == player_id,
            GamePlayer.game_id == game_id
        ).first()
        if not player:
            raise PlayerNotFound(f"Player {player_id} is not in game {game_id}")

        player.avatar_url = avatar_url
        db.commit()
        db.refresh(player)

        logger.info(f"Avatar updated for player {player_id} in game {game_id}")
        return player

    def _apply_status(self, game: Game, status: GameStatus) -> None:
        if self.validator.validate_transition(game, status):
            previous = game.status
            game.status = GameStatus(status).value
            logger.info(f"Game {game.id} moved from {previous} to {game.status}")

    def _stage_results(self, db: Session, game: Game, results: List) -> None:
        self.validator.validate_results(game, results)

        existing = db.query(GameResult).filter(GameResult.game_id == game.id).count()
        if existing:
            raise ResultsAlreadyRecorded(f"Results already recorded for game {game.id}")

        db.add_all([
            GameResult(
                game_id=game.id,
                player_id=result.player_id,
                score=result.score,
                position=result.position,
                is_winner=result.is_winner
            )
            for result in results
        ])
        logger.info(f"Recorded {len(results)} results for game {game.id}")


game_service_obj = GameService()
