"""
One authoritative, in-memory record per active game.

Every mutation of a game goes through its GameSession and runs under that game's lock:
at most one move (or start / invite / abandon) is applied to a given game at a time, while different games
proceed in parallel. A change is made on a working copy, persisted, and only then becomes the current state.
If persisting fails the working copy is thrown away, so nobody ever observes a state that was not stored.
"""

import asyncio
from copy import deepcopy
from typing import Callable, Optional, TypeVar
from uuid import UUID

from loguru import logger

from src.checkers.game import Game
from src.checkers.moves import Move, MoveOutcome
from src.core.exceptions import StaleStateError, StorageError
from src.core.models import GameSnapshot, MoveRecord
from src.db.repository import GameRepository

T = TypeVar("T")


class GameSession:
    def __init__(self, game: Game, repository: GameRepository) -> None:
        self._game = game
        self.repo = repository
        self._lock = asyncio.Lock()

    @property
    def game_id(self) -> UUID:
        return self._game.game_id

    @classmethod
    async def create(
        cls, repository: GameRepository, player_a: str, player_b: Optional[str] = None
    ) -> "GameSession":
        """New game in `waiting`, stored before it is handed out."""
        game = Game.new_game(player_a, player_b)
        await asyncio.to_thread(repository.create_game, game.to_model(), game.game_id)
        logger.info(f"Game {game.game_id} created by {player_a}")
        return cls(game, repository)

    def snapshot(self) -> GameSnapshot:
        return self._game.snapshot()

    def is_participant(self, identity: str) -> bool:
        return self._game.is_participant(identity)

    def legal_moves(self, player: str) -> list[Move]:
        return self._game.legal_moves(player)

    async def invite(self, player_b: str) -> GameSnapshot:
        await self._mutate(lambda game: game.invite(player_b))
        logger.info(f"{player_b} invited to game {self.game_id}")
        return self.snapshot()

    async def start(self) -> GameSnapshot:
        await self._mutate(lambda game: game.start())
        logger.info(f"Game {self.game_id} started")
        return self.snapshot()

    async def submit_move(
        self, mover: str, move: Move, expected_version: Optional[int] = None
    ) -> tuple[GameSnapshot, MoveOutcome]:
        """
        Apply a move for `mover`.

        `expected_version` is the move count the client saw when it picked the move. When given, a move computed
        against an older state is rejected instead of being applied to a board the client never saw.
        """

        def _apply(game: Game) -> MoveOutcome:
            if expected_version is not None and expected_version != game.move_count:
                raise StaleStateError(
                    f"Move was made against version {expected_version}, game is at version {game.move_count}."
                )
            return game.make_move(mover, move)

        def _record(game: Game, outcome: MoveOutcome) -> MoveRecord:
            return MoveRecord(
                game_id=game.game_id,
                mover=mover,
                from_square=move.from_square.to_pair(),
                to_square=outcome.landing_square.to_pair(),
                move_number=game.move_count,
                captured=len(outcome.captured),
            )

        outcome = await self._mutate(_apply, _record)
        snapshot = self.snapshot()
        logger.info(
            f"Game {self.game_id}: {mover} moved ({move.from_square.row},{move.from_square.col})->"
            f"({outcome.landing_square.row},{outcome.landing_square.col}), captured {len(outcome.captured)}"
        )
        if snapshot.winner is not None:
            logger.info(f"Game {self.game_id} finished, winner {snapshot.winner}")
        return snapshot, outcome

    async def abandon(self, quitter: str) -> GameSnapshot:
        await self._mutate(lambda game: game.abandon(quitter))
        snapshot = self.snapshot()
        logger.info(f"Game {self.game_id} abandoned by {quitter}, winner {snapshot.winner}")
        return snapshot

    # -- Internal helpers --
    async def _mutate(
        self,
        change: Callable[[Game], T],
        record: Optional[Callable[[Game, T], MoveRecord]] = None,
    ) -> T:
        """
        Run `change` on a copy of the game, persist it, then commit it in memory. All under the game's lock.
        `record` describes the applied move, stored together with the new board.
        """
        async with self._lock:
            working = deepcopy(self._game)
            result = change(working)
            move = record(working, result) if record is not None else None
            await self._persist(working, move)
            self._game = working
            return result

    async def _persist(self, game: Game, move: Optional[MoveRecord] = None) -> None:
        try:
            stored = await asyncio.to_thread(
                self.repo.update_game, game.game_id, game.to_model(), move
            )
        except StorageError:
            logger.exception(f"Game {game.game_id}: storing failed, change rolled back")
            raise
        if stored is None:
            logger.error(f"Game {game.game_id}: record missing in storage, change rolled back")
            raise StorageError(f"Game {game.game_id} has no stored record to update.")
