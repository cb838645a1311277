"""Implementation of (Game)Repository using SQLAlchemy"""

from typing import Callable, Optional
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import StorageError
from src.core.models import ChatMessage, GameModel, MoveRecord
from src.db.schema import DBChatMessage, DBGame, DBMove

SessionFactory = Callable[[], Session]


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy

    Every call opens its own session: the service calls the repository from worker threads (one per game at most).
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        with self._session() as db:
            game_db = self._fetch_game(db, game_id)
            if game_db:
                return self._to_model(game_db)
            return None

    def create_game(
        self, game: GameModel, game_id: Optional[UUID] = None
    ) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + the game ID."""
        new_id = game_id or uuid4()
        with self._session() as db:
            game_db = DBGame(
                id=new_id,
                board=game.board,
                player_a=game.player_a,
                player_b=game.player_b,
                current_turn=game.current_turn,
                status=game.status,
                winner=game.winner,
                move_count=game.move_count,
            )
            db.add(game_db)
            db.commit()
            db.refresh(game_db)
            return self._to_model(game_db), new_id

    def update_game(
        self, game_id: UUID, game: GameModel, move: Optional[MoveRecord] = None
    ) -> GameModel | None:
        """Add new info to existing record, plus the move that produced it (one transaction)."""
        with self._session() as db:
            game_db = self._fetch_game(db, game_id)
            if not game_db:
                return None
            game_db.board = game.board
            game_db.player_a = game.player_a
            game_db.player_b = game.player_b
            game_db.current_turn = game.current_turn
            game_db.status = game.status
            game_db.winner = game.winner
            game_db.move_count = game.move_count
            if move is not None:
                db.add(
                    DBMove(
                        game_id=game_id,
                        mover=move.mover,
                        move_number=move.move_number,
                        from_row=move.from_square[0],
                        from_col=move.from_square[1],
                        to_row=move.to_square[0],
                        to_col=move.to_square[1],
                        captured=move.captured,
                    )
                )
            db.commit()
            db.refresh(game_db)
            return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record (and its chat and moves)."""
        with self._session() as db:
            game_db = self._fetch_game(db, game_id)
            if not game_db:
                return None
            game_model = self._to_model(game_db)
            for message in db.scalars(
                select(DBChatMessage).where(DBChatMessage.game_id == game_id)
            ):
                db.delete(message)
            for move_db in db.scalars(select(DBMove).where(DBMove.game_id == game_id)):
                db.delete(move_db)
            db.delete(game_db)
            db.commit()
            return game_model

    def list_games(self, status: Optional[str] = None) -> list[tuple[UUID, GameModel]]:
        query = select(DBGame).order_by(DBGame.created_at)
        if status is not None:
            query = query.where(DBGame.status == status)
        with self._session() as db:
            return [(game_db.id, self._to_model(game_db)) for game_db in db.scalars(query)]

    def list_games_for(self, identity: str) -> list[tuple[UUID, GameModel]]:
        query = (
            select(DBGame)
            .where(or_(DBGame.player_a == identity, DBGame.player_b == identity))
            .order_by(DBGame.created_at.desc())
        )
        with self._session() as db:
            return [(game_db.id, self._to_model(game_db)) for game_db in db.scalars(query)]

    def move_history(self, game_id: UUID) -> list[MoveRecord]:
        query = select(DBMove).where(DBMove.game_id == game_id).order_by(DBMove.id)
        with self._session() as db:
            return [self._to_move_record(row) for row in db.scalars(query)]

    def add_chat_message(self, message: ChatMessage) -> ChatMessage:
        with self._session() as db:
            message_db = DBChatMessage(
                game_id=message.game_id, sender=message.sender, text=message.text
            )
            db.add(message_db)
            db.commit()
            db.refresh(message_db)
            return self._to_chat_message(message_db)

    def chat_history(self, game_id: UUID) -> list[ChatMessage]:
        query = (
            select(DBChatMessage)
            .where(DBChatMessage.game_id == game_id)
            .order_by(DBChatMessage.id)
        )
        with self._session() as db:
            return [self._to_chat_message(row) for row in db.scalars(query)]

    # -- Internal helpers --
    def _session(self) -> "_GuardedSession":
        return _GuardedSession(self.session_factory)

    def _fetch_game(self, db: Session, game_id: UUID) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return db.scalar(query)

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            board=[list(row) for row in game_db.board],
            player_a=game_db.player_a,
            player_b=game_db.player_b,
            current_turn=game_db.current_turn,
            status=game_db.status,
            winner=game_db.winner,
            move_count=game_db.move_count,
        )

    def _to_chat_message(self, message_db: DBChatMessage) -> ChatMessage:
        return ChatMessage(
            id=message_db.id,
            game_id=message_db.game_id,
            sender=message_db.sender,
            text=message_db.text,
            created_at=message_db.created_at,
        )

    def _to_move_record(self, move_db: DBMove) -> MoveRecord:
        return MoveRecord(
            id=move_db.id,
            game_id=move_db.game_id,
            mover=move_db.mover,
            from_square=(move_db.from_row, move_db.from_col),
            to_square=(move_db.to_row, move_db.to_col),
            move_number=move_db.move_number,
            captured=move_db.captured,
            created_at=move_db.created_at,
        )


class _GuardedSession:
    """Context manager: a fresh session, rolled back and closed on failure. Database errors surface as StorageError."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory
        self.db: Optional[Session] = None

    def __enter__(self) -> Session:
        try:
            self.db = self.session_factory()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not open a database session: {exc}") from exc
        return self.db

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self.db is not None
        try:
            if exc is not None:
                self.db.rollback()
        finally:
            self.db.close()
        if isinstance(exc, SQLAlchemyError):
            logger.error(f"Database operation failed: {exc}")
            raise StorageError(f"Database operation failed: {exc}") from exc
