"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API/realtime layers (higher) and domain/db layers (lower) use the models defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

# Type aliases to make the models easier to read
PlayerName = str
CellCode = int


@dataclass
class GameModel:
    """Transport-safe representation of a checkers game used between Service, DB, and Game layers."""

    board: list[list[CellCode]]
    player_a: PlayerName
    player_b: Optional[PlayerName]
    current_turn: Optional[str]
    status: str
    winner: Optional[PlayerName] = None
    move_count: int = 0


@dataclass
class ChatMessage:
    """One chat line posted in a game room"""

    game_id: UUID
    sender: PlayerName
    text: str
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)


@dataclass
class MoveRecord:
    """One accepted move, stored in the same transaction as the board it produced"""

    game_id: UUID
    mover: PlayerName
    from_square: tuple[int, int]
    to_square: tuple[int, int]
    move_number: int
    captured: int = 0
    id: Optional[int] = None
    created_at: Optional[datetime] = field(default=None, compare=False)


@dataclass(frozen=True)
class GameSnapshot:
    """Immutable copy of a game's state, the content of every GAME_STATE push."""

    game_id: UUID
    board: tuple[tuple[CellCode, ...], ...]
    player_a: PlayerName
    player_b: Optional[PlayerName]
    current_turn: Optional[str]
    current_player: Optional[PlayerName]
    status: str
    winner: Optional[PlayerName]
    move_count: int

    @property
    def players(self) -> tuple[PlayerName, ...]:
        return tuple(p for p in (self.player_a, self.player_b) if p is not None)
