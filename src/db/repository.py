"""Protocol repository (SQLAlchemy implementation in sql_repository.py, in-memory one in the tests)"""

from typing import Optional, Protocol
from uuid import UUID

from src.core.models import ChatMessage, GameModel, MoveRecord


class GameRepository(Protocol):
    """Persistence layer orchestration. Implementations raise StorageError when the storage itself fails."""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel, game_id: Optional[UUID] = None) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + the game ID."""
        ...

    def update_game(
        self, game_id: UUID, game: GameModel, move: Optional[MoveRecord] = None
    ) -> GameModel | None:
        """Add new info to existing record. `move` (the move that produced it) is stored in the same transaction."""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...

    def list_games(self, status: Optional[str] = None) -> list[tuple[UUID, GameModel]]:
        """All games, optionally only those with the given status."""
        ...

    def list_games_for(self, identity: str) -> list[tuple[UUID, GameModel]]:
        """Games in which `identity` plays, newest first."""
        ...

    def move_history(self, game_id: UUID) -> list[MoveRecord]:
        """Accepted moves of a game, in the order they were played."""
        ...

    def add_chat_message(self, message: ChatMessage) -> ChatMessage:
        """Store a chat line, returns it with id and timestamp filled in."""
        ...

    def chat_history(self, game_id: UUID) -> list[ChatMessage]:
        """Chat lines of a game, oldest first."""
        ...
