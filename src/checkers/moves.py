"""
Movement and capturing rules

Key idea: every piece has a fixed list of diagonal directions. From those we derive the simple steps and the jumps.
Whether a move is allowed *this turn* (turn order, mandatory capture) is decided later by the Game.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from src.checkers.pieces import Cell
from src.checkers.square import BOARD_SIZE, Square
from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Side


class Board(Protocol):
    """Just the parts the movement rules need"""

    def cell(self, square: Square) -> Cell: ...
    def set_cell(self, square: Square, cell: Cell) -> None: ...
    def clear(self, square: Square) -> None: ...
    def locate_side(self, side: Side) -> list[Square]: ...
    def count_pieces(self, side: Side) -> int: ...


Vector = tuple[int, int]

# Player A starts on row 0 and moves down the rows, player B moves up.
FORWARD: dict[Side, list[Vector]] = {
    Side.PLAYER_A: [(1, -1), (1, 1)],
    Side.PLAYER_B: [(-1, -1), (-1, 1)],
}
KING_DIRECTIONS: list[Vector] = [(1, -1), (1, 1), (-1, -1), (-1, 1)]

# The row on which a man of that side gets promoted
PROMOTION_ROW: dict[Side, int] = {
    Side.PLAYER_A: BOARD_SIZE - 1,
    Side.PLAYER_B: 0,
}


@dataclass(frozen=True)
class Move:
    """A step, or a jump when `captured` holds the square of the piece being taken"""

    from_square: Square
    to_square: Square
    captured: Optional[Square] = None

    @property
    def is_jump(self) -> bool:
        return self.captured is not None

    def targets(self, to_square: Square) -> bool:
        return self.to_square == to_square


@dataclass
class MoveOutcome:
    """What actually happened on the board when a move got applied (including auto-continued jumps)"""

    move: Move
    landing_square: Square
    captured: list[Square] = field(default_factory=list)
    promoted: bool = False


def directions(cell: Cell) -> list[Vector]:
    """Men go forward only, kings in all four diagonals"""
    if cell.is_king:
        return KING_DIRECTIONS
    side = cell.side
    if side is None:
        return []
    return FORWARD[side]


# --- MOVEMENT RULES ---
def legal_destinations(board: Board, position: Square, mover: Side) -> list[Move]:
    """
    Every destination the piece on `position` can reach, ignoring the mandatory capture rule.
    ---

    * step: adjacent diagonal square that is empty
    * jump: two squares along the diagonal, the square in between holds an opponent piece, and the landing square is empty

    A square that does not hold one of `mover`'s pieces has no destinations.
    """
    piece = board.cell(position)
    if not piece.belongs_to(mover):
        return []

    moves: list[Move] = []
    for d_row, d_col in directions(piece):
        step = position.offset(d_row, d_col)
        if not step.is_within_bounds():
            continue

        if board.cell(step).is_empty:
            moves.append(Move(from_square=position, to_square=step))
            continue

        landing = position.offset(2 * d_row, 2 * d_col)
        if not landing.is_within_bounds():
            continue
        jumped = board.cell(step)
        if jumped.belongs_to(mover.opponent) and board.cell(landing).is_empty:
            moves.append(Move(from_square=position, to_square=landing, captured=step))
    return moves


def jumps_from(board: Board, position: Square, mover: Side) -> list[Move]:
    return [move for move in legal_destinations(board, position, mover) if move.is_jump]


def any_capture_available(board: Board, mover: Side) -> bool:
    """Mandatory capture: if True, only jumps are allowed for `mover` this turn."""
    return any(jumps_from(board, square, mover) for square in board.locate_side(mover))


def all_legal_moves(board: Board, mover: Side) -> list[Move]:
    """Moves that are allowed this turn, mandatory capture applied. Used to show a client its options."""
    candidates = [
        move
        for square in board.locate_side(mover)
        for move in legal_destinations(board, square, mover)
    ]
    jumps = [move for move in candidates if move.is_jump]
    return jumps if jumps else candidates


# --- APPLYING A MOVE ---
def apply_move(board: Board, move: Move, mover: Side) -> MoveOutcome:
    """
    Update the board with a move that is known to be legal.
    ---

    1. relocate the piece
    2. clear the captured square (if a jump)
    3. promote a man that lands on the opponent's back row
    4. after a jump: keep capturing from the landing square while another jump exists.
       The first jump found is taken, the player does not get to choose between branches.

    NOTE a man that got promoted in this move continues the chain as a king.
    """
    piece = board.cell(move.from_square)
    if not piece.belongs_to(mover):
        raise IllegalMoveError(
            f"No piece of {mover} on ({move.from_square.row}, {move.from_square.col})."
        )
    if not board.cell(move.to_square).is_empty:
        raise IllegalMoveError(
            f"Destination ({move.to_square.row}, {move.to_square.col}) is occupied."
        )

    # a two-row move without an explicit capture is still a jump over the midpoint
    if move.captured is None and abs(move.to_square.row - move.from_square.row) == 2:
        move = Move(
            move.from_square,
            move.to_square,
            captured=move.from_square.midpoint(move.to_square),
        )

    outcome = MoveOutcome(move=move, landing_square=move.to_square)
    _relocate(board, move, outcome)

    if not move.is_jump:
        return outcome

    while True:
        continuation = jumps_from(board, outcome.landing_square, mover)
        if not continuation:
            break
        _relocate(board, continuation[0], outcome)

    return outcome


def _relocate(board: Board, move: Move, outcome: MoveOutcome) -> None:
    """One hop: move the piece, remove the jumped piece, promote if needed."""
    piece = board.cell(move.from_square)
    board.clear(move.from_square)
    if move.captured is not None:
        board.clear(move.captured)
        outcome.captured.append(move.captured)

    side = piece.side
    if side is not None and not piece.is_king and move.to_square.row == PROMOTION_ROW[side]:
        piece = piece.promoted()
        outcome.promoted = True

    board.set_cell(move.to_square, piece)
    outcome.landing_square = move.to_square


# --- END OF THE GAME ---
def check_victory(board: Board) -> Optional[Side]:
    """
    A side wins when the opponent has no pieces left.

    NOTE a side that still has pieces but no legal move is not declared the loser (no stalemate detection).
    """
    for side in (Side.PLAYER_A, Side.PLAYER_B):
        if board.count_pieces(side.opponent) == 0:
            return side
    return None
