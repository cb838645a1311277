"""Unit tests for src/db/sql_repository.py"""

from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.checkers.board import Board
from src.core.exceptions import StorageError
from src.core.models import ChatMessage, GameModel, MoveRecord
from src.core.shared_types import Status
from src.db.sql_repository import SQLGameRepository


def new_model(**overrides) -> GameModel:
    values = dict(
        board=Board.initial().to_rows(),
        player_a="alice",
        player_b="bob",
        current_turn="player_a",
        status=Status.IN_PROGRESS.value,
    )
    values.update(overrides)
    return GameModel(**values)


def new_move(game_id: UUID, **overrides) -> MoveRecord:
    values = dict(
        game_id=game_id,
        mover="alice",
        from_square=(2, 3),
        to_square=(3, 4),
        move_number=1,
    )
    values.update(overrides)
    return MoveRecord(**values)


def test_create_game(session_factory: sessionmaker[Session]) -> None:
    """Conversion from a GameModel to DBGame for a new entry to the database."""
    model = new_model()
    repo = SQLGameRepository(session_factory)
    record_in_db, game_id = repo.create_game(model)
    assert isinstance(record_in_db, GameModel)
    assert record_in_db == model
    assert game_id is not None


def test_create_game_keeps_given_id(session_factory: sessionmaker[Session]) -> None:
    game_id = uuid4()
    repo = SQLGameRepository(session_factory)
    _, stored_id = repo.create_game(new_model(), game_id)
    assert stored_id == game_id
    assert repo.get_game(game_id) == new_model()


def test_get_unknown_game(session_factory: sessionmaker[Session]) -> None:
    """
    Should return None if ID does not match anything in database.

    NOTE with an empty database, any id is a valid test case.
    """
    repo = SQLGameRepository(session_factory)
    assert repo.get_game(uuid4()) is None

    repo.create_game(new_model())
    assert repo.get_game(uuid4()) is None


def test_update_game(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    _, game_id = repo.create_game(new_model())

    board = Board.initial().to_rows()
    board[2][3], board[3][4] = 0, 1
    updated = new_model(board=board, current_turn="player_b", move_count=1)
    assert repo.update_game(game_id, updated) == updated
    assert repo.get_game(game_id) == updated


def test_update_finished_game(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    _, game_id = repo.create_game(new_model())
    finished = new_model(current_turn=None, status=Status.FINISHED.value, winner="bob")
    repo.update_game(game_id, finished)
    stored = repo.get_game(game_id)
    assert stored is not None
    assert stored.winner == "bob"
    assert stored.current_turn is None


def test_update_unknown_game(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    assert repo.update_game(uuid4(), new_model()) is None


def test_delete_game(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    model = new_model()
    _, game_id = repo.create_game(model)
    repo.add_chat_message(ChatMessage(game_id=game_id, sender="alice", text="hi"))
    repo.update_game(game_id, model, new_move(game_id))

    assert repo.delete_game(game_id) == model
    assert repo.get_game(game_id) is None
    assert repo.chat_history(game_id) == []
    assert repo.move_history(game_id) == []
    assert repo.delete_game(game_id) is None


def test_list_games_by_status(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    _, playing = repo.create_game(new_model())
    repo.create_game(new_model(player_b=None, current_turn=None, status=Status.WAITING.value))

    in_progress = repo.list_games(Status.IN_PROGRESS.value)
    assert [game_id for game_id, _ in in_progress] == [playing]
    assert len(repo.list_games()) == 2


def test_update_records_the_move(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    model = new_model()
    _, game_id = repo.create_game(model)

    model.move_count = 1
    model.current_turn = "player_b"
    repo.update_game(game_id, model, new_move(game_id))
    # updates without a move (start, abandon) leave the history alone
    repo.update_game(game_id, model)
    model.move_count = 2
    repo.update_game(
        game_id,
        model,
        new_move(
            game_id, mover="bob", from_square=(5, 4), to_square=(3, 2), move_number=2, captured=1
        ),
    )

    history = repo.move_history(game_id)
    assert [(move.move_number, move.mover, move.captured) for move in history] == [
        (1, "alice", 0),
        (2, "bob", 1),
    ]
    assert history[1].from_square == (5, 4)
    assert history[1].to_square == (3, 2)
    assert history[0].id is not None and history[0].created_at is not None
    assert repo.get_game(game_id) == model


def test_move_of_unknown_game_is_not_stored(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    game_id = uuid4()
    assert repo.update_game(game_id, new_model(), new_move(game_id)) is None
    assert repo.move_history(game_id) == []


def test_list_games_for_a_player(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    _, first = repo.create_game(new_model())
    _, second = repo.create_game(new_model(player_a="carol", player_b="alice"))
    repo.create_game(new_model(player_a="carol", player_b="dave"))

    assert [game_id for game_id, _ in repo.list_games_for("alice")] == [second, first]
    assert repo.list_games_for("erin") == []


def test_chat_history_in_order(session_factory: sessionmaker[Session]) -> None:
    repo = SQLGameRepository(session_factory)
    _, game_id = repo.create_game(new_model())
    _, other_game = repo.create_game(new_model())

    first = repo.add_chat_message(ChatMessage(game_id=game_id, sender="alice", text="hi"))
    repo.add_chat_message(ChatMessage(game_id=other_game, sender="carol", text="elsewhere"))
    second = repo.add_chat_message(ChatMessage(game_id=game_id, sender="bob", text="hello"))

    assert first.id is not None and first.created_at is not None
    history = repo.chat_history(game_id)
    assert [message.text for message in history] == ["hi", "hello"]
    assert history == [first, second]


def test_database_failure_is_a_storage_error() -> None:
    """A database without the tables: every statement fails."""
    broken = sessionmaker(bind=create_engine("sqlite://"), expire_on_commit=False)
    repo = SQLGameRepository(broken)
    with pytest.raises(StorageError):
        repo.get_game(uuid4())
    with pytest.raises(StorageError):
        repo.create_game(new_model())
