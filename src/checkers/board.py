"""The Board holds the position (the configuration of pieces on the 8x8 grid). Movement rules live in moves.py"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Self

from src.checkers.pieces import MAN_OF, Cell
from src.checkers.square import BOARD_SIZE, Square
from src.core.exceptions import InvalidBoardError, OutOfBoundsError
from src.core.shared_types import Side

# Rows each side fills at the start of the game. Row 0 is player A's edge.
STARTING_ROWS: dict[Side, range] = {
    Side.PLAYER_A: range(0, 3),
    Side.PLAYER_B: range(BOARD_SIZE - 3, BOARD_SIZE),
}


@dataclass
class Board:
    grid: list[list[Cell]]

    @classmethod
    def empty(cls) -> Self:
        return cls([[Cell.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)])

    @classmethod
    def initial(cls) -> Self:
        """Standard layout: men on the dark squares of the first three rows of each side."""
        board = cls.empty()
        for side, rows in STARTING_ROWS.items():
            for row in rows:
                for col in range(BOARD_SIZE):
                    square = Square(row, col)
                    if square.is_dark():
                        board.set_cell(square, MAN_OF[side])
        return board

    @classmethod
    def from_rows(cls, rows: list[list[int]]) -> Self:
        """Decode the wire format (0 empty, 1/2 men, 3/4 kings)"""
        if len(rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in rows):
            raise InvalidBoardError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}.")
        try:
            grid = [[Cell(value) for value in row] for row in rows]
        except ValueError as exc:
            raise InvalidBoardError(f"Unknown cell value in board: {exc}") from exc
        return cls(grid)

    def to_rows(self) -> list[list[int]]:
        return [[int(cell) for cell in row] for row in self.grid]

    def copy(self) -> Self:
        return deepcopy(self)

    def cell(self, square: Square) -> Cell:
        self._assert_within_bounds(square)
        return self.grid[square.row][square.col]

    def set_cell(self, square: Square, cell: Cell) -> None:
        self._assert_within_bounds(square)
        self.grid[square.row][square.col] = cell

    def clear(self, square: Square) -> None:
        self.set_cell(square, Cell.EMPTY)

    def is_empty(self, square: Square) -> bool:
        return self.cell(square).is_empty

    def locate_side(self, side: Side) -> list[Square]:
        return [
            Square(row, col)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if self.grid[row][col].belongs_to(side)
        ]

    def count_pieces(self, side: Side) -> int:
        return len(self.locate_side(side))

    def _assert_within_bounds(self, square: Square) -> None:
        """Never clamp: a coordinate off the board is an error."""
        if not square.is_within_bounds():
            raise OutOfBoundsError(
                f"Square ({square.row}, {square.col}) is outside the {BOARD_SIZE}x{BOARD_SIZE} board."
            )
