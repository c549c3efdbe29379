"""
Per-room buzzer used during a question.

The board enables the buzzer, starts the audio, and players race to buzz in.
The first accepted buzz wins and closes the buzzer; later buzzes are still
recorded so the board can show the full order.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from jeopardy.core.game_config import EARLY_BUZZ_WINDOW_MS

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Buzz:
    player_id: Any
    team_id: Any = None
    player_name: Optional[str] = None
    team_name: Optional[str] = None
    timestamp: int = 0
    client_time: Optional[float] = None
    time_from_start: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "teamId": self.team_id,
            "playerId": self.player_id,
            "playerName": self.player_name,
            "teamName": self.team_name,
            "timestamp": self.timestamp,
            "clientTime": self.client_time,
            "timeFromStart": self.time_from_start,
        }


@dataclass
class BuzzResult:
    accepted: bool
    is_first: bool = False
    reason: Optional[str] = None
    buzz: Optional[Buzz] = None


@dataclass
class Buzzer:
    clock: Callable[[], int] = now_ms
    is_active: bool = False
    first_buzz: Optional[Buzz] = None
    buzzed_players: Set[Any] = field(default_factory=set)
    buzz_start_time: Optional[float] = None
    buzz_order: List[Buzz] = field(default_factory=list)
    audio_start_time: Optional[int] = None

    def enable(self, start_time: Optional[float] = None) -> None:
        """Open the buzzer for a new question."""
        self._clear()
        self.is_active = True
        self.buzz_start_time = start_time

    def activate(self) -> None:
        self.is_active = True
        self.first_buzz = None
        self.buzzed_players.clear()

    def deactivate(self) -> None:
        self.is_active = False
        self.first_buzz = None
        self.buzzed_players.clear()

    def audio_started(self) -> int:
        self.audio_start_time = self.clock()
        return self.audio_start_time

    def reset(self) -> None:
        self._clear()

    def buzz(self, player_id, team_id=None, player_name=None, team_name=None,
             client_timestamp=None, time_from_start=None) -> BuzzResult:
        if not self.is_active:
            return BuzzResult(accepted=False, reason="Buzzer not active")

        if player_id in self.buzzed_players:
            return BuzzResult(accepted=False, reason="Already buzzed")

        now = self.clock()
        if self.audio_start_time is not None and now - self.audio_start_time < EARLY_BUZZ_WINDOW_MS:
            return BuzzResult(accepted=False, reason="Too early")

        self.buzzed_players.add(player_id)
        buzz = Buzz(
            player_id=player_id,
            team_id=team_id,
            player_name=player_name,
            team_name=team_name,
            timestamp=now,
            client_time=client_timestamp,
            time_from_start=time_from_start,
        )

        is_first = self.first_buzz is None
        if is_first:
            self.first_buzz = buzz
            # First buzz closes the buzzer for everyone else
            self.is_active = False
            logger.info(f"First buzz: {player_name} ({team_name})")

        self.buzz_order.append(buzz)
        self.buzz_order.sort(key=lambda b: b.time_from_start if b.time_from_start is not None else float("inf"))
        return BuzzResult(accepted=True, is_first=is_first, buzz=buzz)

    def order(self) -> List[Dict]:
        return [b.to_dict() for b in self.buzz_order]

    def _clear(self) -> None:
        self.is_active = False
        self.first_buzz = None
        self.buzzed_players.clear()
        self.buzz_start_time = None
        self.buzz_order = []
        self.audio_start_time = None
