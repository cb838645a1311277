"""
Wire protocol of the push channel.

Every message is a JSON object {"type": ..., "data": {...}}. Inbound messages are a tagged union on `type`,
validated here before anything gets dispatched. Keys are camelCase on the wire, snake_case in Python.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Self, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from src.core.exceptions import (
    InvalidRequestError,
    MessageTooLargeError,
    ProtocolError,
    UnknownMessageError,
)
from src.core.models import ChatMessage, GameSnapshot
from src.core.shared_types import PresenceStatus


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True
    )


# --- PAYLOADS ---
class EmptyData(WireModel):
    pass


class AuthData(WireModel):
    token: str = Field(min_length=1)


class GameRef(WireModel):
    game_id: UUID


class GameStatePayload(WireModel):
    """Full snapshot of a game. The only thing a client renders from."""

    game_id: UUID
    board: list[list[int]]
    player_a: str
    player_b: Optional[str]
    current_turn: Optional[str]
    current_player: Optional[str]
    status: str
    winner: Optional[str]
    move_count: int

    @classmethod
    def from_snapshot(cls, snapshot: GameSnapshot) -> Self:
        return cls(
            game_id=snapshot.game_id,
            board=[list(row) for row in snapshot.board],
            player_a=snapshot.player_a,
            player_b=snapshot.player_b,
            current_turn=snapshot.current_turn,
            current_player=snapshot.current_player,
            status=snapshot.status,
            winner=snapshot.winner,
            move_count=snapshot.move_count,
        )


class IdentityData(WireModel):
    identity: str


class UserStatusData(WireModel):
    identity: str
    status: PresenceStatus


class LobbyData(WireModel):
    online_users: list[UserStatusData]


class RoomMemberData(WireModel):
    game_id: UUID
    identity: str


class ViewerCountData(WireModel):
    game_id: UUID
    count: int


class AbandonData(WireModel):
    game_id: UUID
    winner_id: str
    abandoned_by: str


class ReasonData(WireModel):
    reason: str
    message: Optional[str] = None


class ChatData(WireModel):
    id: Optional[int]
    game_id: UUID
    sender: str
    text: str
    created_at: Optional[datetime]

    @classmethod
    def from_message(cls, message: ChatMessage) -> Self:
        return cls(
            id=message.id,
            game_id=message.game_id,
            sender=message.sender,
            text=message.text,
            created_at=message.created_at,
        )


class InvitationData(WireModel):
    game_id: UUID
    from_identity: str


# --- INBOUND MESSAGES ---
class AuthMessage(WireModel):
    type: Literal["AUTH"]
    data: AuthData


class JoinGameMessage(WireModel):
    type: Literal["JOIN_GAME"]
    data: GameRef


class LeaveGameMessage(WireModel):
    type: Literal["LEAVE_GAME"]
    data: GameRef


class StartGameMessage(WireModel):
    type: Literal["START_GAME"]
    data: GameRef


class ViewGameMessage(WireModel):
    type: Literal["VIEW_GAME"]
    data: GameRef


class PingMessage(WireModel):
    type: Literal["PING"]
    data: EmptyData = EmptyData()


InboundMessage = Annotated[
    Union[
        AuthMessage,
        JoinGameMessage,
        LeaveGameMessage,
        StartGameMessage,
        ViewGameMessage,
        PingMessage,
    ],
    Field(discriminator="type"),
]

_INBOUND = TypeAdapter(InboundMessage)


def parse_inbound(raw: str | bytes, max_size: int) -> InboundMessage:
    """Validate a raw frame: size first, then structure."""
    size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
    if size > max_size:
        raise MessageTooLargeError(f"Message of {size} bytes exceeds the {max_size} byte limit.")

    try:
        return _INBOUND.validate_json(raw)
    except ValidationError as exc:
        error_types = {error["type"] for error in exc.errors()}
        if "union_tag_invalid" in error_types:
            raise UnknownMessageError("Unknown message type.") from exc
        if error_types & {
            "json_invalid",
            "json_type",
            "model_type",
            "model_attributes_type",
            "dict_type",
            "union_tag_not_found",
        }:
            raise ProtocolError("Malformed message.") from exc
        raise InvalidRequestError(f"Invalid message payload: {exc.errors()[0]['msg']}") from exc


# --- OUTBOUND EVENTS ---
class AuthSuccessEvent(WireModel):
    type: Literal["AUTH_SUCCESS"] = "AUTH_SUCCESS"
    data: IdentityData


class AuthErrorEvent(WireModel):
    type: Literal["AUTH_ERROR"] = "AUTH_ERROR"
    data: ReasonData


class LobbyUpdateEvent(WireModel):
    type: Literal["LOBBY_UPDATE"] = "LOBBY_UPDATE"
    data: LobbyData


class UserStatusEvent(WireModel):
    type: Literal["USER_STATUS"] = "USER_STATUS"
    data: UserStatusData


class GameStateEvent(WireModel):
    type: Literal["GAME_STATE"] = "GAME_STATE"
    data: GameStatePayload

    @classmethod
    def from_snapshot(cls, snapshot: GameSnapshot) -> Self:
        return cls(data=GameStatePayload.from_snapshot(snapshot))


class PlayerJoinedEvent(WireModel):
    type: Literal["PLAYER_JOINED"] = "PLAYER_JOINED"
    data: RoomMemberData


class PlayerLeftEvent(WireModel):
    type: Literal["PLAYER_LEFT"] = "PLAYER_LEFT"
    data: RoomMemberData


class ViewerCountUpdateEvent(WireModel):
    type: Literal["VIEWER_COUNT_UPDATE"] = "VIEWER_COUNT_UPDATE"
    data: ViewerCountData


class GameAbandonedEvent(WireModel):
    type: Literal["GAME_ABANDONED"] = "GAME_ABANDONED"
    data: AbandonData


class ErrorEvent(WireModel):
    type: Literal["ERROR"] = "ERROR"
    data: ReasonData


class PongEvent(WireModel):
    type: Literal["PONG"] = "PONG"
    data: EmptyData = EmptyData()


class ChatMessageEvent(WireModel):
    type: Literal["CHAT_MESSAGE"] = "CHAT_MESSAGE"
    data: ChatData


class GameInvitationEvent(WireModel):
    type: Literal["GAME_INVITATION"] = "GAME_INVITATION"
    data: InvitationData


class GameAcceptedEvent(WireModel):
    type: Literal["GAME_ACCEPTED"] = "GAME_ACCEPTED"
    data: GameRef


OutboundEvent = Union[
    AuthSuccessEvent,
    AuthErrorEvent,
    LobbyUpdateEvent,
    UserStatusEvent,
    GameStateEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    ViewerCountUpdateEvent,
    GameAbandonedEvent,
    ErrorEvent,
    PongEvent,
    ChatMessageEvent,
    GameInvitationEvent,
    GameAcceptedEvent,
]


def encode(event: OutboundEvent) -> str:
    return event.model_dump_json(by_alias=True)


def error_event(reason: str, message: Optional[str] = None) -> ErrorEvent:
    return ErrorEvent(data=ReasonData(reason=reason, message=message))
