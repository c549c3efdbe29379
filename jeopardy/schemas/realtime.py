from pydantic import Field
from typing import Any, Dict, Optional, Union

from jeopardy.schemas.game import CamelModel

GameRef = Union[int, str]


class RealtimeMessage(CamelModel):
    """Frame exchanged over the game socket."""
    event: str = Field(..., min_length=1)
    data: Any = None


class AvatarUpdatedEvent(CamelModel):
    game_id: GameRef
    player_id: GameRef
    avatar_url: Optional[str] = None


class PlayerUpdatedEvent(CamelModel):
    game_id: GameRef
    player: Dict[str, Any]


class TeamUpdatedEvent(CamelModel):
    game_id: GameRef
    team: Dict[str, Any]


class BuzzIn(CamelModel):
    game_id: GameRef
    player_id: GameRef
    team_id: Optional[GameRef] = None
    player_name: Optional[str] = None
    team_name: Optional[str] = None
    client_timestamp: Optional[float] = None
    time_from_start: Optional[float] = None


class NotifyAvatarUpdate(CamelModel):
    game_id: Optional[GameRef] = None
    player_id: Optional[GameRef] = None
    avatar_url: Optional[str] = None


class NotifyResponse(CamelModel):
    success: bool
    message: str


class EmitRequest(CamelModel):
    event: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(CamelModel):
    status: str
    timestamp: str
    active_rooms: int
    active_connections: int
