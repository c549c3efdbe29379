from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jeopardy.core.database import Base
from jeopardy.core.game_config import GameStatus
from jeopardy.models.team import game_teams


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, default="")
    question = Column(Text, nullable=False, default="")
    max_players = Column(Integer, nullable=False, default=4)
    status = Column(String(20), nullable=False, default=GameStatus.WAITING.value, index=True)
    # Denormalized so capacity can be reserved with a single conditional UPDATE
    player_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    players = relationship(
        "GamePlayer", back_populates="game", order_by="GamePlayer.id",
        cascade="all, delete-orphan"
    )
    results = relationship(
        "GameResult", back_populates="game", order_by="GameResult.position",
        cascade="all, delete-orphan"
    )
    teams = relationship("Team", secondary=game_teams, back_populates="games")

    __table_args__ = (
        CheckConstraint('max_players >= 1', name='valid_max_players'),
        CheckConstraint('player_count <= max_players', name='player_count_within_capacity'),
    )

    def has_player(self, player_id: int) -> bool:
        return any(p.id == player_id for p in self.players)

    def is_full(self) -> bool:
        return self.player_count >= self.max_players
