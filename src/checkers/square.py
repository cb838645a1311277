"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Checkers board is always 8x8, but keep it in one place.
BOARD_SIZE = 8


@dataclass(frozen=True)
class Square:
    row: int
    col: int

    @classmethod
    def from_pair(cls, pair: tuple[int, int] | list[int]) -> Square:
        row, col = pair
        return cls(int(row), int(col))

    def to_pair(self) -> tuple[int, int]:
        return (self.row, self.col)

    def is_within_bounds(self) -> bool:
        return (0 <= self.row < BOARD_SIZE) and (0 <= self.col < BOARD_SIZE)

    def is_dark(self) -> bool:
        """Pieces only ever stand on the dark squares"""
        return (self.row + self.col) % 2 == 1

    def offset(self, d_row: int, d_col: int) -> Square:
        return Square(self.row + d_row, self.col + d_col)

    def midpoint(self, other: Square) -> Square:
        return Square((self.row + other.row) // 2, (self.col + other.col) // 2)
