"""
Configuration constants for the Music Jeopardy game engine.
"""
from enum import Enum


class GameStatus(str, Enum):
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Lobby limits
MIN_PLAYERS = 1
MAX_PLAYERS_LIMIT = 100

# Each status may only advance to the next one
STATUS_TRANSITIONS = {
    GameStatus.WAITING: {GameStatus.IN_PROGRESS},
    GameStatus.IN_PROGRESS: {GameStatus.COMPLETED},
    GameStatus.COMPLETED: set(),
}

# Buzzer
EARLY_BUZZ_WINDOW_MS = 500


def is_valid_transition(current: GameStatus, requested: GameStatus) -> bool:
    """Check if a status change is allowed by the transition table."""
    return GameStatus(requested) in STATUS_TRANSITIONS[GameStatus(current)]


def is_accepting_players(status: str) -> bool:
    """Only lobbies (WAITING games) accept new players."""
    return status == GameStatus.WAITING.value
