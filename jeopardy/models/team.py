from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jeopardy.core.database import Base


# A team can be reused across games
game_teams = Table(
    "game_teams",
    Base.metadata,
    Column("game_id", Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(30), nullable=False, default="#3b82f6")
    score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    games = relationship("Game", secondary=game_teams, back_populates="teams")
    members = relationship(
        "TeamPlayer", back_populates="team", cascade="all, delete-orphan",
        order_by="TeamPlayer.player_id"
    )

    @property
    def players(self):
        return [tp.player for tp in self.members]


class TeamPlayer(Base):
    __tablename__ = "team_players"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True)
    player_id = Column(Integer, ForeignKey("game_players.id", ondelete="CASCADE"), primary_key=True)

    team = relationship("Team", back_populates="members")
    player = relationship("GamePlayer", back_populates="team_links")
