"""
Gateway: the protocol handler of the push channel.

One GatewaySession per connection. It authenticates the connection, validates and dispatches inbound messages,
and answers through the connection's outbox. States:

    unauthenticated --AUTH--> in_lobby --JOIN_GAME / VIEW_GAME--> in_room(game_id)
                                  ^------------LEAVE_GAME------------'

Every failure of a single message is answered with an ERROR event to that connection only; the connection stays open.
"""

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable, Optional
from uuid import UUID

from loguru import logger

from src.core.config import Settings
from src.core.exceptions import (
    GameError,
    InvalidRequestError,
    InvalidTokenError,
    ProtocolError,
    UnauthenticatedError,
)
from src.core.models import GameSnapshot
from src.core.shared_types import Role
from src.realtime.auth import TokenVerifier
from src.realtime.connection import Connection, Transport
from src.realtime.presence import PresenceRegistry
from src.realtime.protocol import (
    AuthErrorEvent,
    AuthMessage,
    AuthSuccessEvent,
    GameStateEvent,
    IdentityData,
    InboundMessage,
    JoinGameMessage,
    LeaveGameMessage,
    LobbyData,
    LobbyUpdateEvent,
    PingMessage,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PongEvent,
    ReasonData,
    RoomMemberData,
    StartGameMessage,
    ViewerCountData,
    ViewerCountUpdateEvent,
    ViewGameMessage,
    error_event,
    parse_inbound,
)
from src.realtime.rate_limiter import SlidingWindowRateLimiter
from src.realtime.rooms import RoomRegistry
from src.services.checkers_service import CheckersService

# Receives the next raw frame, None once the peer is gone
Receiver = Callable[[], Awaitable[Optional[str | bytes]]]


class ConnectionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    IN_LOBBY = "in_lobby"
    IN_ROOM = "in_room"


class Gateway:
    """Process-wide entry point: holds the shared registries and opens one session per new connection."""

    def __init__(
        self,
        service: CheckersService,
        rooms: RoomRegistry,
        presence: PresenceRegistry,
        verifier: TokenVerifier,
        rate_limiter: SlidingWindowRateLimiter,
        settings: Settings,
    ) -> None:
        self.service = service
        self.rooms = rooms
        self.presence = presence
        self.verifier = verifier
        self.rate_limiter = rate_limiter
        self.settings = settings

    def open(self, connection: Optional[Connection] = None) -> "GatewaySession":
        return GatewaySession(self, connection or Connection())

    async def serve(self, receive: Receiver, transport: Transport) -> None:
        """Serve one connection until it closes."""
        await self.open().run(receive, transport)


class GatewaySession:
    def __init__(self, gateway: Gateway, connection: Connection) -> None:
        self.gateway = gateway
        self.connection = connection
        self.current_game: Optional[UUID] = None
        self.is_spectator = False
        self._handlers: dict[type, Callable[..., Awaitable[None]]] = {
            AuthMessage: self._on_auth,
            JoinGameMessage: self._on_join_game,
            ViewGameMessage: self._on_view_game,
            LeaveGameMessage: self._on_leave_game,
            StartGameMessage: self._on_start_game,
            PingMessage: self._on_ping,
        }

    @property
    def identity(self) -> Optional[str]:
        return self.connection.identity

    @property
    def state(self) -> ConnectionState:
        if self.identity is None:
            return ConnectionState.UNAUTHENTICATED
        if self.current_game is None:
            return ConnectionState.IN_LOBBY
        return ConnectionState.IN_ROOM

    async def run(self, receive: Receiver, transport: Transport) -> None:
        """
        Dispatch loop: inbound frames are handled one at a time, in order,
        while a separate sender task drains the outbox to the transport.
        """
        sender = asyncio.create_task(self.connection.drain(transport))
        try:
            while True:
                raw = await receive()
                if raw is None:
                    break
                await self.handle_raw(raw)
        finally:
            self.close()
            await sender

    async def handle_raw(self, raw: str | bytes) -> None:
        try:
            message = parse_inbound(raw, self.gateway.settings.message_size_limit)
            if self.identity is not None:
                self.gateway.rate_limiter.check(self.identity)
            await self.dispatch(message)
        except GameError as exc:
            logger.debug(f"{self.connection!r}: {type(exc).__name__}: {exc}")
            self.connection.send(error_event(exc.reason, str(exc)))
        except Exception:
            logger.exception(f"{self.connection!r}: unexpected error while handling a message")
            self.connection.send(error_event("server_error"))

    async def dispatch(self, message: InboundMessage) -> None:
        if self.identity is None and not isinstance(message, AuthMessage):
            raise UnauthenticatedError("Authentication required.")
        handler = self._handlers[type(message)]
        await handler(message)

    def close(self) -> None:
        """Disconnect cleanup: go offline, then leave the room. A move already being applied still commits."""
        self.gateway.presence.disconnect(self.connection)
        identity = self.identity
        if identity is not None and not self.gateway.presence.is_connected(identity):
            self.gateway.rate_limiter.forget(identity)
        if self.current_game is not None:
            self._leave_room()
        self.connection.close()

    # --- HANDLERS ---
    async def _on_auth(self, message: AuthMessage) -> None:
        try:
            identity = self.gateway.verifier.verify(message.data.token)
        except InvalidTokenError as exc:
            logger.info(f"{self.connection!r}: authentication failed ({exc})")
            self.connection.send(AuthErrorEvent(data=ReasonData(reason=exc.reason, message=str(exc))))
            return

        if self.identity is not None:
            if identity != self.identity:
                raise ProtocolError("Connection is already authenticated as another user.")
        else:
            self.connection.identity = identity
            # auto-subscribe to the presence channel
            self.gateway.presence.connect(self.connection)
            logger.info(f"{self.connection!r} authenticated")

        self.connection.send(AuthSuccessEvent(data=IdentityData(identity=identity)))
        self.connection.send(
            LobbyUpdateEvent(data=LobbyData(online_users=self.gateway.presence.online_users()))
        )

    async def _on_join_game(self, message: JoinGameMessage) -> None:
        """Participants join as players, anybody else as a spectator."""
        snapshot = await self.gateway.service.get_snapshot(message.data.game_id)
        role = Role.PLAYER if self.identity in snapshot.players else Role.SPECTATOR
        self._enter_room(snapshot, role)

    async def _on_view_game(self, message: ViewGameMessage) -> None:
        snapshot = await self.gateway.service.get_snapshot(message.data.game_id)
        self._enter_room(snapshot, Role.SPECTATOR)

    async def _on_leave_game(self, message: LeaveGameMessage) -> None:
        if self.current_game != message.data.game_id:
            raise InvalidRequestError(f"Not in the room of game {message.data.game_id}.")
        self._leave_room()

    async def _on_start_game(self, message: StartGameMessage) -> None:
        assert self.identity is not None
        await self.gateway.service.start_game(message.data.game_id, self.identity)

    async def _on_ping(self, message: PingMessage) -> None:
        self.connection.send(PongEvent())

    # --- ROOM HELPERS ---
    def _enter_room(self, snapshot: GameSnapshot, role: Role) -> None:
        assert self.identity is not None
        game_id = snapshot.game_id
        if self.current_game is not None:
            self._leave_room()

        rooms = self.gateway.rooms
        rooms.join_room(game_id, self.connection, role, snapshot.players)
        self.current_game = game_id
        self.is_spectator = role == Role.SPECTATOR

        # a (re)joining client always starts from a full snapshot
        self.connection.send(GameStateEvent.from_snapshot(snapshot))
        rooms.broadcast(
            game_id,
            PlayerJoinedEvent(data=RoomMemberData(game_id=game_id, identity=self.identity)),
            excluding=self.connection,
        )
        if self.is_spectator:
            self._announce_viewer_count(game_id)

    def _leave_room(self) -> None:
        game_id = self.current_game
        assert game_id is not None and self.identity is not None
        rooms = self.gateway.rooms
        role = rooms.leave_room(game_id, self.connection)
        self.current_game = None
        self.is_spectator = False
        if role is None:
            return

        rooms.broadcast(
            game_id, PlayerLeftEvent(data=RoomMemberData(game_id=game_id, identity=self.identity))
        )
        if role == Role.SPECTATOR:
            self._announce_viewer_count(game_id)

    def _announce_viewer_count(self, game_id: UUID) -> None:
        rooms = self.gateway.rooms
        rooms.broadcast(
            game_id,
            ViewerCountUpdateEvent(
                data=ViewerCountData(game_id=game_id, count=rooms.viewer_count(game_id))
            ),
        )
