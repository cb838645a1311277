"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from src.checkers.moves import Move
from src.checkers.square import BOARD_SIZE
from src.core.exceptions import InvalidRequestError
from src.core.models import ChatMessage, MoveRecord
from src.realtime.protocol import GameStatePayload, UserStatusData
from src.services.checkers_service import GameListing

PlayerName = str
SquarePair = tuple[int, int]


class ApiModel(BaseModel):
    """camelCase keys on the wire, same as the push channel"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- REQUEST MODELS ---
class CreateGameRequest(ApiModel):
    invitee: Optional[PlayerName] = None

    @field_validator("invitee")
    @classmethod
    def validate_invitee(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not value.strip():
            raise InvalidRequestError("Invitee name cannot be blank.")
        return value.strip()


class MoveRequest(ApiModel):
    """Squares as [row, col]. Out of range values pass validation: the rules engine reports them as out_of_bounds."""

    from_square: SquarePair
    to_square: SquarePair
    expected_version: Optional[int] = None

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: SquarePair) -> SquarePair:
        row, col = value
        # anything this far off is not a board coordinate at all
        if abs(row) > 4 * BOARD_SIZE or abs(col) > 4 * BOARD_SIZE:
            raise InvalidRequestError(f"Cannot interpret {value!r} as a square.")
        return value


class ChatRequest(ApiModel):
    text: str


# --- RESPONSE MODELS ---
class GameResponse(GameStatePayload):
    pass


class MoveResponse(ApiModel):
    from_square: SquarePair
    to_square: SquarePair
    captured: Optional[SquarePair]

    @classmethod
    def from_move(cls, move: Move) -> Self:
        return cls(
            from_square=move.from_square.to_pair(),
            to_square=move.to_square.to_pair(),
            captured=move.captured.to_pair() if move.captured else None,
        )


class LegalMovesResponse(ApiModel):
    game_id: UUID
    player_name: PlayerName
    legal_moves: list[MoveResponse]


class GameListingResponse(ApiModel):
    game_id: UUID
    player_a: PlayerName
    player_b: Optional[PlayerName]
    status: str
    winner: Optional[PlayerName]
    viewer_count: int

    @classmethod
    def from_listing(cls, listing: GameListing) -> Self:
        return cls(
            game_id=listing.snapshot.game_id,
            player_a=listing.snapshot.player_a,
            player_b=listing.snapshot.player_b,
            status=str(listing.snapshot.status),
            winner=listing.snapshot.winner,
            viewer_count=listing.viewer_count,
        )


class MoveRecordResponse(ApiModel):
    move_number: int
    mover: PlayerName
    from_square: SquarePair
    to_square: SquarePair
    captured: int
    created_at: Optional[datetime]

    @classmethod
    def from_record(cls, record: MoveRecord) -> Self:
        return cls(
            move_number=record.move_number,
            mover=record.mover,
            from_square=record.from_square,
            to_square=record.to_square,
            captured=record.captured,
            created_at=record.created_at,
        )


class OnlineUserResponse(ApiModel):
    identity: PlayerName
    status: str

    @classmethod
    def from_status(cls, user: UserStatusData) -> Self:
        return cls(identity=user.identity, status=user.status.value)


class ChatMessageResponse(ApiModel):
    id: Optional[int]
    game_id: UUID
    sender: PlayerName
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
