from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from jeopardy.core.database import Base


class GamePlayer(Base):
    __tablename__ = "game_players"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    avatar_url = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    game = relationship("Game", back_populates="players")
    team_links = relationship("TeamPlayer", back_populates="player", cascade="all, delete-orphan")

    # Names are compared case-sensitively
    __table_args__ = (
        UniqueConstraint('game_id', 'name', name='unique_player_name_per_game'),
    )
