"""Defines the values a cell on the checkers board can hold"""

from enum import IntEnum
from typing import Optional

from src.core.shared_types import Side


class Cell(IntEnum):
    """The integer values double as the wire encoding of a serialized board."""

    EMPTY = 0
    A_MAN = 1
    B_MAN = 2
    A_KING = 3
    B_KING = 4

    @property
    def side(self) -> Optional[Side]:
        return CELL_OWNER.get(self)

    @property
    def is_king(self) -> bool:
        return self in (Cell.A_KING, Cell.B_KING)

    @property
    def is_empty(self) -> bool:
        return self == Cell.EMPTY

    def belongs_to(self, side: Side) -> bool:
        return self.side == side

    def promoted(self) -> "Cell":
        """A king stays a king, an empty cell stays empty"""
        return PROMOTIONS.get(self, self)


CELL_OWNER: dict[Cell, Side] = {
    Cell.A_MAN: Side.PLAYER_A,
    Cell.A_KING: Side.PLAYER_A,
    Cell.B_MAN: Side.PLAYER_B,
    Cell.B_KING: Side.PLAYER_B,
}

PROMOTIONS: dict[Cell, Cell] = {
    Cell.A_MAN: Cell.A_KING,
    Cell.B_MAN: Cell.B_KING,
}

MAN_OF: dict[Side, Cell] = {
    Side.PLAYER_A: Cell.A_MAN,
    Side.PLAYER_B: Cell.B_MAN,
}
