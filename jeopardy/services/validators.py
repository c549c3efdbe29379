from typing import List

from jeopardy.core.exceptions import (
    GameConflict, GameFull, GameNotAccepting, PlayerNameTaken,
    PlayerNotFound, InvalidTransition, InvalidInput
)
from jeopardy.core.game_config import GameStatus, is_valid_transition, is_accepting_players
from jeopardy.models.game import Game


class GameValidator:
    """Validates lobby joins, status transitions and results."""

    def validate_join(self, game: Game, player_name: str) -> None:
        """Checks run in the order clients rely on for their error message."""
        if game.is_full():
            raise GameFull("Game is full")

        if not is_accepting_players(game.status):
            raise GameNotAccepting("Game is not accepting players")

        # Exact, case-sensitive match
        if any(p.name == player_name for p in game.players):
            raise PlayerNameTaken("Player name already taken")

    def validate_transition(self, game: Game, requested: GameStatus) -> bool:
        """
        Returns False when the game is already in the requested status,
        True when the transition should be applied.
        """
        current = GameStatus(game.status)
        requested = GameStatus(requested)
        if current == requested:
            return False
        if not is_valid_transition(current, requested):
            raise InvalidTransition(
                f"Cannot change game {game.id} from {current.value} to {requested.value}"
            )
        return True

    def validate_results(self, game: Game, results: List) -> None:
        if game.status != GameStatus.COMPLETED.value:
            raise GameConflict("Results can only be recorded for a completed game")

        seen = set()
        for result in results:
            if result.player_id in seen:
                raise InvalidInput(f"Duplicate result for player {result.player_id}")
            seen.add(result.player_id)
            if not game.has_player(result.player_id):
                raise PlayerNotFound(f"Player {result.player_id} is not in game {game.id}")
