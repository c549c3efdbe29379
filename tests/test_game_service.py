from concurrent.futures import ThreadPoolExecutor

import pytest

from jeopardy.core.exceptions import (
    GameFull, PlayerNameTaken, InvalidTransition, GameNotFound
)
from jeopardy.core.game_config import GameStatus, is_valid_transition
from jeopardy.models.game_player import GamePlayer
from jeopardy.services.game_service import game_service_obj


def test_transition_table():
    assert is_valid_transition(GameStatus.WAITING, GameStatus.IN_PROGRESS)
    assert is_valid_transition(GameStatus.IN_PROGRESS, GameStatus.COMPLETED)
    assert not is_valid_transition(GameStatus.WAITING, GameStatus.COMPLETED)
    assert not is_valid_transition(GameStatus.COMPLETED, GameStatus.WAITING)
    assert not is_valid_transition(GameStatus.COMPLETED, GameStatus.IN_PROGRESS)
    assert not is_valid_transition(GameStatus.IN_PROGRESS, GameStatus.WAITING)


def test_same_status_is_a_no_op(db_session):
    game = game_service_obj.create_game(db_session, "Quiz", "")
    game = game_service_obj.update_game_status(db_session, game.id, GameStatus.WAITING)
    assert game.status == "WAITING"


def test_completed_game_cannot_reopen(db_session):
    game = game_service_obj.create_game(db_session, "Quiz", "")
    game_service_obj.update_game_status(db_session, game.id, GameStatus.IN_PROGRESS)
    game_service_obj.update_game_status(db_session, game.id, GameStatus.COMPLETED)

    with pytest.raises(InvalidTransition):
        game_service_obj.update_game_status(db_session, game.id, GameStatus.WAITING)


def test_join_unknown_game(db_session):
    with pytest.raises(GameNotFound):
        game_service_obj.join_game(db_session, 424242, "Alice")


def test_full_game_creates_no_player(db_session):
    game = game_service_obj.create_game(db_session, "Quiz", "", max_players=1)
    game_service_obj.join_game(db_session, game.id, "Alice")

    with pytest.raises(GameFull):
        game_service_obj.join_game(db_session, game.id, "Bob")

    names = [p.name for p in db_session.query(GamePlayer).filter(GamePlayer.game_id == game.id)]
    assert names == ["Alice"]


def test_concurrent_joins_respect_capacity(test_db, db_session):
    game = game_service_obj.create_game(db_session, "Rush", "", max_players=2)

    def attempt(name):
        session = test_db()
        try:
            game_service_obj.join_game(session, game.id, name)
            return "joined"
        except GameFull:
            return "full"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(attempt, [f"player{i}" for i in range(6)]))

    assert outcomes.count("joined") == 2
    assert outcomes.count("full") == 4

    db_session.expire_all()
    assert db_session.query(GamePlayer).filter(GamePlayer.game_id == game.id).count() == 2


def test_concurrent_joins_same_name(test_db, db_session):
    game = game_service_obj.create_game(db_session, "Rush", "", max_players=5)

    def attempt(_):
        session = test_db()
        try:
            game_service_obj.join_game(session, game.id, "Alice")
            return "joined"
        except PlayerNameTaken:
            return "taken"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(attempt, range(4)))

    assert outcomes.count("joined") == 1
    assert outcomes.count("taken") == 3

    db_session.expire_all()
    game = game_service_obj.get_game(db_session, game.id)
    assert game.player_count == 1
