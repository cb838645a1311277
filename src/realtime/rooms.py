"""
Room Registry: which connections receive the push updates of which game.

All methods are plain (non-async) functions. They run on the event loop without suspending,
so a join/leave can never interleave with another one or with the member snapshot a broadcast takes.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import UUID

from loguru import logger

from src.core.shared_types import PresenceStatus, Role
from src.realtime.connection import Connection
from src.realtime.presence import PresenceRegistry
from src.realtime.protocol import OutboundEvent


@dataclass(frozen=True)
class Membership:
    connection: Connection
    role: Role

    @property
    def identity(self) -> Optional[str]:
        return self.connection.identity


class RoomRegistry:
    def __init__(self, presence: PresenceRegistry) -> None:
        self.presence = presence
        self._rooms: dict[UUID, dict[str, Membership]] = {}
        self._room_of: dict[str, UUID] = {}
        # identities seated in each game, never counted as viewers
        self._players: dict[UUID, frozenset[str]] = {}

    def join_room(
        self,
        game_id: UUID,
        connection: Connection,
        role: Role,
        players: Iterable[str] = (),
    ) -> None:
        """A connection sits in at most one room: joining a new one leaves the previous one."""
        previous = self._room_of.get(connection.connection_id)
        if previous is not None and previous != game_id:
            self.leave_room(previous, connection)

        room = self._rooms.setdefault(game_id, {})
        room[connection.connection_id] = Membership(connection, role)
        self.set_players(game_id, players)
        self._room_of[connection.connection_id] = game_id
        logger.info(f"{connection.identity} joined room {game_id} as {role}")

        if role == Role.PLAYER and connection.identity is not None:
            self.presence.set_status(connection.identity, PresenceStatus.IN_GAME)

    def leave_room(self, game_id: UUID, connection: Connection) -> Optional[Role]:
        """Returns the role the connection had, None if it was not in that room. Empty rooms are deleted."""
        room = self._rooms.get(game_id)
        if room is None or connection.connection_id not in room:
            return None

        membership = room.pop(connection.connection_id)
        self._room_of.pop(connection.connection_id, None)
        if not room:
            del self._rooms[game_id]
            self._players.pop(game_id, None)
        logger.info(f"{connection.identity} left room {game_id}")

        identity = connection.identity
        if (
            membership.role == Role.PLAYER
            and identity is not None
            and self.presence.is_connected(identity)
            and not self._is_seated_anywhere(identity)
        ):
            self.presence.set_status(identity, PresenceStatus.ONLINE)
        return membership.role

    def broadcast(
        self,
        game_id: UUID,
        event: OutboundEvent,
        excluding: Optional[Connection] = None,
    ) -> int:
        """Queue the event for every member (except `excluding`). Returns how many connections got it."""
        delivered = 0
        for membership in self.members(game_id):
            if membership.connection is excluding:
                continue
            membership.connection.send(event)
            delivered += 1
        return delivered

    def set_players(self, game_id: UUID, players: Iterable[str]) -> None:
        """Record who plays the game. Only rooms that exist are tracked."""
        players = frozenset(players)
        if players and game_id in self._rooms:
            self._players[game_id] = players

    def viewer_count(self, game_id: UUID) -> int:
        """Spectators only: a player's identity is never counted, even on a spectating connection."""
        players = self._players.get(game_id, frozenset())
        return sum(
            1
            for membership in self.members(game_id)
            if membership.role == Role.SPECTATOR and membership.identity not in players
        )

    def members(self, game_id: UUID) -> tuple[Membership, ...]:
        """Snapshot of the membership, unaffected by later joins/leaves."""
        return tuple(self._rooms.get(game_id, {}).values())

    def room_of(self, connection: Connection) -> Optional[UUID]:
        return self._room_of.get(connection.connection_id)

    def role_of(self, connection: Connection) -> Optional[Role]:
        game_id = self.room_of(connection)
        if game_id is None:
            return None
        return self._rooms[game_id][connection.connection_id].role

    def has_room(self, game_id: UUID) -> bool:
        return game_id in self._rooms

    def _is_seated_anywhere(self, identity: str) -> bool:
        return any(
            membership.role == Role.PLAYER and membership.identity == identity
            for room in self._rooms.values()
            for membership in room.values()
        )
