"""Process-wide registry of the active game sessions, keyed by game id."""

import asyncio
from typing import Optional
from uuid import UUID

from loguru import logger

from src.checkers.game import Game
from src.core.exceptions import GameNotFoundError
from src.core.models import GameSnapshot
from src.core.shared_types import Status
from src.db.repository import GameRepository
from src.services.game_session import GameSession


class GameStore:
    """
    Loads games from the repository on first use and keeps them in memory while they can still change
    (single authority per process). Finished games are evicted, later reads load them again.
    """

    def __init__(self, repository: GameRepository) -> None:
        self.repo = repository
        self._sessions: dict[UUID, GameSession] = {}
        # one load per game id at a time, loads of different games run side by side
        self._loading: dict[UUID, asyncio.Task[GameSession]] = {}

    async def create_game(self, player_a: str, player_b: Optional[str] = None) -> GameSession:
        session = await GameSession.create(self.repo, player_a, player_b)
        self._sessions[session.game_id] = session
        return session

    async def get(self, game_id: UUID) -> GameSession:
        session = self._sessions.get(game_id)
        if session is not None:
            return session

        loading = self._loading.get(game_id)
        if loading is None:
            loading = asyncio.create_task(self._load(game_id))
            self._loading[game_id] = loading
        # a cancelled caller must not cancel the load other callers are waiting for
        return await asyncio.shield(loading)

    def evict(self, game_id: UUID) -> None:
        """Forget a finished game. Unfinished games stay, their session is the authority."""
        session = self._sessions.get(game_id)
        if session is not None and session.snapshot().status == Status.FINISHED:
            del self._sessions[game_id]
            logger.debug(f"Game {game_id} evicted from memory")

    def is_loaded(self, game_id: UUID) -> bool:
        return game_id in self._sessions

    async def list_in_progress(self) -> list[GameSnapshot]:
        """In progress games, the in-memory state taking precedence over the stored one."""
        stored = await asyncio.to_thread(self.repo.list_games, Status.IN_PROGRESS.value)
        snapshots: dict[UUID, GameSnapshot] = {
            game_id: Game.from_model(game_id, model).snapshot() for game_id, model in stored
        }
        for game_id, session in list(self._sessions.items()):
            snapshot = session.snapshot()
            if snapshot.status == Status.IN_PROGRESS:
                snapshots[game_id] = snapshot
            else:
                snapshots.pop(game_id, None)
        return list(snapshots.values())

    async def list_for(self, identity: str) -> list[GameSnapshot]:
        """Games of one player, newest first, loaded sessions overriding what is stored."""
        stored = await asyncio.to_thread(self.repo.list_games_for, identity)
        snapshots: list[GameSnapshot] = []
        for game_id, model in stored:
            session = self._sessions.get(game_id)
            snapshots.append(
                session.snapshot() if session else Game.from_model(game_id, model).snapshot()
            )
        return snapshots

    # -- Internal helpers --
    async def _load(self, game_id: UUID) -> GameSession:
        try:
            model = await asyncio.to_thread(self.repo.get_game, game_id)
            if model is None:
                raise GameNotFoundError(f"Game with {game_id=} not found.")
            session = GameSession(Game.from_model(game_id, model), self.repo)
            self._sessions[game_id] = session
            logger.debug(f"Game {game_id} loaded from storage")
            return session
        finally:
            self._loading.pop(game_id, None)
