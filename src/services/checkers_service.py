"""Orchestration between the request/response calls, the game sessions, and the push channel (rooms + presence)."""

import asyncio
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from loguru import logger

from src.checkers.game import build_move
from src.checkers.moves import Move
from src.core.config import Settings
from src.core.exceptions import InvalidRequestError, NotAPlayerError
from src.core.models import ChatMessage, GameSnapshot, MoveRecord
from src.core.shared_types import Status
from src.realtime.presence import PresenceRegistry
from src.realtime.protocol import (
    AbandonData,
    ChatData,
    ChatMessageEvent,
    GameAbandonedEvent,
    GameAcceptedEvent,
    GameInvitationEvent,
    GameRef,
    GameStateEvent,
    InvitationData,
    UserStatusData,
)
from src.realtime.rooms import RoomRegistry
from src.services.game_store import GameStore


@dataclass(frozen=True)
class GameListing:
    """A game together with how many spectators it currently has."""

    snapshot: GameSnapshot
    viewer_count: int


class CheckersService:
    """Orchestration of layers for checkers games.

    Mutations only happen through the game's session. Broadcasts happen after the session released its lock,
    and always carry the full snapshot returned by that session. Once the last broadcast of a finished game
    is out, its session is evicted from memory.
    """

    def __init__(
        self,
        store: GameStore,
        rooms: RoomRegistry,
        presence: PresenceRegistry,
        settings: Settings,
    ) -> None:
        self.store = store
        self.rooms = rooms
        self.presence = presence
        self.settings = settings

    # -- Game lifecycle --
    async def create_game(self, player_a: str, invitee: Optional[str] = None) -> GameSnapshot:
        """First player creates a game, optionally inviting a second player straight away."""
        session = await self.store.create_game(player_a, invitee)
        snapshot = session.snapshot()
        if invitee is not None:
            self._send_invitation(snapshot.game_id, player_a, invitee)
        return snapshot

    async def invite(self, game_id: UUID, inviter: str, invitee: str) -> GameSnapshot:
        session = await self.store.get(game_id)
        if not session.is_participant(inviter):
            raise NotAPlayerError(f"{inviter} cannot invite players to game {game_id}.")
        snapshot = await session.invite(invitee)
        self._send_invitation(game_id, inviter, invitee)
        return snapshot

    async def accept_invitation(self, game_id: UUID, identity: str) -> GameSnapshot:
        """Only the invited player can accept. Accepting starts the game."""
        session = await self.store.get(game_id)
        if session.snapshot().player_b != identity:
            raise NotAPlayerError(f"{identity} was not invited to game {game_id}.")
        snapshot = await session.start()
        for player in snapshot.players:
            self.presence.send_to(player, GameAcceptedEvent(data=GameRef(game_id=game_id)))
        self._broadcast_state(snapshot)
        return snapshot

    async def start_game(self, game_id: UUID, identity: str) -> GameSnapshot:
        session = await self.store.get(game_id)
        if not session.is_participant(identity):
            raise NotAPlayerError(f"{identity} is not playing in game {game_id}.")
        snapshot = await session.start()
        self._broadcast_state(snapshot)
        return snapshot

    async def submit_move(
        self,
        game_id: UUID,
        mover: str,
        from_square: tuple[int, int],
        to_square: tuple[int, int],
        expected_version: Optional[int] = None,
    ) -> GameSnapshot:
        """
        The mover gets the accept/reject as the return value (or exception),
        every room member (mover included) gets the new GAME_STATE. Rejected moves are not broadcast.
        """
        session = await self.store.get(game_id)
        move: Move = build_move(from_square, to_square)
        snapshot, _ = await session.submit_move(mover, move, expected_version)
        self._broadcast_state(snapshot)
        self._evict_if_finished(snapshot)
        return snapshot

    async def abandon(self, game_id: UUID, quitter: str) -> GameSnapshot:
        session = await self.store.get(game_id)
        snapshot = await session.abandon(quitter)
        # for the type checker: an abandoned game always has a winner
        assert snapshot.winner is not None
        self.rooms.broadcast(
            game_id,
            GameAbandonedEvent(
                data=AbandonData(game_id=game_id, winner_id=snapshot.winner, abandoned_by=quitter)
            ),
        )
        self._broadcast_state(snapshot)
        self._evict_if_finished(snapshot)
        return snapshot

    # -- Reads --
    async def get_snapshot(self, game_id: UUID) -> GameSnapshot:
        session = await self.store.get(game_id)
        return session.snapshot()

    async def legal_moves(self, game_id: UUID, player: str) -> list[Move]:
        session = await self.store.get(game_id)
        return session.legal_moves(player)

    async def list_active_games(self) -> list[GameListing]:
        snapshots = await self.store.list_in_progress()
        return [
            GameListing(snapshot=snapshot, viewer_count=self.rooms.viewer_count(snapshot.game_id))
            for snapshot in snapshots
        ]

    async def list_games_for(self, identity: str) -> list[GameListing]:
        """Every game `identity` plays or played, newest first, with status, winner and current viewers."""
        snapshots = await self.store.list_for(identity)
        return [
            GameListing(snapshot=snapshot, viewer_count=self.rooms.viewer_count(snapshot.game_id))
            for snapshot in snapshots
        ]

    async def move_history(self, game_id: UUID) -> list[MoveRecord]:
        await self.store.get(game_id)
        return await asyncio.to_thread(self.store.repo.move_history, game_id)

    def online_users(self) -> list[UserStatusData]:
        return self.presence.online_users()

    # -- Chat --
    async def submit_chat(self, game_id: UUID, sender: str, text: str) -> ChatMessage:
        text = text.strip()
        if not text:
            raise InvalidRequestError("Chat message is empty.")
        if len(text) > self.settings.chat_max_length:
            raise InvalidRequestError(
                f"Chat message longer than {self.settings.chat_max_length} characters."
            )

        await self.store.get(game_id)
        stored = await asyncio.to_thread(
            self.store.repo.add_chat_message, ChatMessage(game_id=game_id, sender=sender, text=text)
        )
        self.rooms.broadcast(game_id, ChatMessageEvent(data=ChatData.from_message(stored)))
        logger.debug(f"Chat in game {game_id} from {sender}")
        return stored

    async def chat_history(self, game_id: UUID) -> list[ChatMessage]:
        await self.store.get(game_id)
        return await asyncio.to_thread(self.store.repo.chat_history, game_id)

    # -- Internal helpers --
    def _broadcast_state(self, snapshot: GameSnapshot) -> None:
        self.rooms.set_players(snapshot.game_id, snapshot.players)
        self.rooms.broadcast(snapshot.game_id, GameStateEvent.from_snapshot(snapshot))

    def _evict_if_finished(self, snapshot: GameSnapshot) -> None:
        if snapshot.status == Status.FINISHED:
            self.store.evict(snapshot.game_id)

    def _send_invitation(self, game_id: UUID, inviter: str, invitee: str) -> None:
        delivered = self.presence.send_to(
            invitee,
            GameInvitationEvent(data=InvitationData(game_id=game_id, from_identity=inviter)),
        )
        if not delivered:
            logger.info(f"{invitee} is offline, invitation to game {game_id} not pushed")
