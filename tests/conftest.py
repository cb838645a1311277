"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Generator, Optional
from uuid import UUID, uuid4

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.checkers.board import Board
from src.checkers.pieces import Cell
from src.checkers.square import Square
from src.core.config import Settings
from src.core.exceptions import StorageError
from src.core.models import ChatMessage, GameModel, MoveRecord
from src.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Factory for sessions on a test database. Tables are removed at teardown to make tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


# --- IN-MEMORY REPOSITORY ---
class MemoryRepository:
    """Mock the GameRepository using a dictionary of game models."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}
        self._chat: list[ChatMessage] = []
        self._moves: list[MoveRecord] = []
        self.update_calls = 0

    def get_game(self, game_id: UUID) -> GameModel | None:
        game = self._games.get(game_id)
        return replace(game, board=[list(row) for row in game.board]) if game else None

    def create_game(
        self, game: GameModel, game_id: Optional[UUID] = None
    ) -> tuple[GameModel, UUID]:
        game_id = game_id or uuid4()
        self._games[game_id] = game
        return game, game_id

    def update_game(
        self, game_id: UUID, game: GameModel, move: Optional[MoveRecord] = None
    ) -> GameModel | None:
        self.update_calls += 1
        if game_id not in self._games:
            return None
        self._games[game_id] = game
        if move is not None:
            self._moves.append(replace(move, id=len(self._moves) + 1))
        return game

    def delete_game(self, game_id: UUID) -> GameModel | None:
        return self._games.pop(game_id, None)

    def list_games(self, status: Optional[str] = None) -> list[tuple[UUID, GameModel]]:
        return [
            (game_id, game)
            for game_id, game in self._games.items()
            if status is None or game.status == status
        ]

    def list_games_for(self, identity: str) -> list[tuple[UUID, GameModel]]:
        return [
            (game_id, game)
            for game_id, game in reversed(self._games.items())
            if identity in (game.player_a, game.player_b)
        ]

    def move_history(self, game_id: UUID) -> list[MoveRecord]:
        return [move for move in self._moves if move.game_id == game_id]

    def add_chat_message(self, message: ChatMessage) -> ChatMessage:
        stored = replace(
            message, id=len(self._chat) + 1, created_at=datetime.now(timezone.utc)
        )
        self._chat.append(stored)
        return stored

    def chat_history(self, game_id: UUID) -> list[ChatMessage]:
        return [message for message in self._chat if message.game_id == game_id]


class FailingRepository(MemoryRepository):
    """Accepts new games, but every update fails as if the database went away."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_updates = False

    def update_game(
        self, game_id: UUID, game: GameModel, move: Optional[MoveRecord] = None
    ) -> GameModel | None:
        if self.fail_updates:
            self.update_calls += 1
            raise StorageError("database unavailable")
        return super().update_game(game_id, game, move)


@pytest.fixture
def memory_repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def failing_repository() -> FailingRepository:
    return FailingRepository()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key="test-secret",
        database_url=DATABASE_URL,
        message_size_limit=512,
        max_messages_per_minute=5,
    )


# --- BOARD HELPERS ---
@pytest.fixture
def board_with() -> Callable[[dict[tuple[int, int], Cell]], Board]:
    """Call the inner function with {(row, col): cell} to get an otherwise empty board"""

    def _create_board(pieces: dict[tuple[int, int], Cell]) -> Board:
        board = Board.empty()
        for (row, col), cell in pieces.items():
            board.set_cell(Square(row, col), cell)
        return board

    return _create_board
