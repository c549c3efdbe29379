from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime

from jeopardy.core.game_config import GameStatus, MIN_PLAYERS, MAX_PLAYERS_LIMIT


class CamelModel(BaseModel):
    """Base schema speaking the camelCase JSON the browser client uses."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class GameCreate(CamelModel):
    title: str = Field("", max_length=200, description="Title shown in the lobby list")
    question: str = Field("", description="Opening question or theme of the game")
    max_players: Optional[int] = Field(
        None,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS_LIMIT,
        description="Lobby capacity, defaults to the configured DEFAULT_MAX_PLAYERS"
    )


class JoinGame(CamelModel):
    player_name: str = Field(..., min_length=1, max_length=50, description="Display name, unique within the game")


class ResultCreate(CamelModel):
    player_id: int = Field(..., description="GamePlayer id the result belongs to")
    score: float = 0
    position: int = Field(..., ge=1, description="1-based rank")
    is_winner: bool = False


class GameUpdate(CamelModel):
    status: Optional[GameStatus] = None
    results: Optional[List[ResultCreate]] = None


class AvatarUpdate(CamelModel):
    avatar_url: str = Field(..., min_length=1, max_length=500)


class PlayerResponse(CamelModel):
    id: int
    game_id: int
    name: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class ResultResponse(CamelModel):
    id: int
    game_id: int
    player_id: int
    score: float
    position: int
    is_winner: bool
    player: Optional[PlayerResponse] = None


class GameResponse(CamelModel):
    id: int
    title: str
    question: str
    max_players: int
    status: GameStatus
    player_count: int
    players: List[PlayerResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GameDetail(GameResponse):
    results: List[ResultResponse] = []
