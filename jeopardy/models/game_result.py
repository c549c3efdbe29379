from sqlalchemy import (
    Column, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from jeopardy.core.database import Base


class GameResult(Base):
    __tablename__ = "game_results"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("game_players.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False, default=0)
    position = Column(Integer, nullable=False)
    is_winner = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    game = relationship("Game", back_populates="results")
    player = relationship("GamePlayer")

    # Constraints
    __table_args__ = (
        UniqueConstraint('game_id', 'player_id', name='unique_result_per_player'),
        CheckConstraint('position >= 1', name='valid_position'),
    )
