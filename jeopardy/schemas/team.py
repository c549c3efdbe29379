from pydantic import Field
from typing import List, Optional
from datetime import datetime

from jeopardy.schemas.game import CamelModel, PlayerResponse


class TeamCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#3b82f6", max_length=30)
    player_ids: List[int] = Field(default_factory=list, description="GamePlayer ids on this team")


class TeamUpdate(TeamCreate):
    pass


class TeamScoreUpdate(CamelModel):
    score: int


class TeamResponse(CamelModel):
    id: int
    name: str
    color: str
    score: int
    players: List[PlayerResponse] = []
    created_at: Optional[datetime] = None


class PlayerRemoval(CamelModel):
    game_id: int
    player_id: int
    removed: int
