import os
import tempfile
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from jeopardy.api.deps import get_db
from jeopardy.core.database import Base
from jeopardy.models.game import Game
from jeopardy.models.game_player import GamePlayer
from jeopardy.models.game_result import GameResult
from jeopardy.models.team import Team, TeamPlayer, game_teams
from jeopardy.services.room_broadcaster import room_broadcaster
from main import app


@pytest.fixture(scope="session")
def test_db():
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 10}
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)

@pytest.fixture
def db_session(test_db):
    session = test_db()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture(autouse=True)
def db_cleanup(db_session):
    db_session.query(TeamPlayer).delete()
    db_session.execute(game_teams.delete())
    for model in [GameResult, GamePlayer, Team, Game]:
        db_session.query(model).delete()
    db_session.commit()
    room_broadcaster.reset()

@pytest.fixture
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
