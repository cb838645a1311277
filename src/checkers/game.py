"""
The Game class is the entrypoint into the domain layer for the service layer.
It is responsible for orchestrating all the business logic required to play a turn of checkers -->
passes this information to the service layer, which can then pass it onwards to the realtime / API layers.
"""

from dataclasses import dataclass
from typing import Optional, Self
from uuid import UUID, uuid4

from src.checkers.board import Board
from src.checkers.moves import (
    Move,
    MoveOutcome,
    all_legal_moves,
    any_capture_available,
    apply_move,
    check_victory,
    legal_destinations,
)
from src.checkers.square import Square
from src.core.exceptions import (
    CaptureRequiredError,
    GameStateError,
    IllegalMoveError,
    NotAPlayerError,
    NotYourTurnError,
    OutOfBoundsError,
    WrongOwnerError,
)
from src.core.models import GameModel, GameSnapshot
from src.core.shared_types import Side, Status


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    game_id: UUID
    player_a: str
    player_b: Optional[str]
    board: Board
    turn: Optional[Side]
    status: Status
    winner: Optional[str] = None
    move_count: int = 0

    @classmethod
    def new_game(
        cls,
        player_a: str,
        player_b: Optional[str] = None,
        game_id: Optional[UUID] = None,
    ) -> Self:
        """Freshly created games wait for the second player: standard layout, nobody to move yet."""
        if player_b is not None and player_b == player_a:
            raise GameStateError("A player cannot play against themselves.")
        return cls(
            game_id=game_id or uuid4(),
            player_a=player_a,
            player_b=player_b,
            board=Board.initial(),
            turn=None,
            status=Status.WAITING,
        )

    @classmethod
    def from_model(cls, game_id: UUID, model: GameModel) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""
        if model.status not in Status.__members__.values():
            raise GameStateError(
                f"Invalid status: {model.status!r}. \nPick one from {','.join(status.value for status in Status)}"
            )
        if model.current_turn is not None and model.current_turn not in Side.__members__.values():
            raise GameStateError(f"Invalid turn owner: {model.current_turn!r}.")

        return cls(
            game_id=game_id,
            player_a=model.player_a,
            player_b=model.player_b,
            board=Board.from_rows(model.board),
            turn=Side(model.current_turn) if model.current_turn else None,
            status=Status(model.status),
            winner=model.winner,
            move_count=model.move_count,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        return GameModel(
            board=self.board.to_rows(),
            player_a=self.player_a,
            player_b=self.player_b,
            current_turn=self.turn.value if self.turn else None,
            status=self.status.value,
            winner=self.winner,
            move_count=self.move_count,
        )

    def snapshot(self) -> GameSnapshot:
        """Read-only copy of the current state, safe to hand to other tasks."""
        return GameSnapshot(
            game_id=self.game_id,
            board=tuple(tuple(row) for row in self.board.to_rows()),
            player_a=self.player_a,
            player_b=self.player_b,
            current_turn=self.turn.value if self.turn else None,
            current_player=self.player_for(self.turn) if self.turn else None,
            status=self.status.value,
            winner=self.winner,
            move_count=self.move_count,
        )

    # --- MEMBERSHIP ---
    def side_of(self, identity: str) -> Optional[Side]:
        if identity == self.player_a:
            return Side.PLAYER_A
        if self.player_b is not None and identity == self.player_b:
            return Side.PLAYER_B
        return None

    def player_for(self, side: Side) -> Optional[str]:
        return self.player_a if side == Side.PLAYER_A else self.player_b

    def is_participant(self, identity: str) -> bool:
        return self.side_of(identity) is not None

    def opponent_of(self, identity: str) -> Optional[str]:
        side = self._assert_participant(identity)
        return self.player_for(side.opponent)

    # --- LIFECYCLE ---
    def invite(self, player_b: str) -> None:
        """Registering the 2nd player to an open game"""
        if self.status != Status.WAITING:
            raise GameStateError(
                f"Cannot invite a player. Game is not accepting new players. status: {self.status}"
            )
        if self.player_b is not None:
            raise GameStateError(f"Game already has a second player: {self.player_b}.")
        if player_b == self.player_a:
            raise GameStateError("A player cannot play against themselves.")
        self.player_b = player_b

    def start(self) -> None:
        """waiting --> in progress. Player A always moves first."""
        if self.status != Status.WAITING:
            raise GameStateError(f"Game can only be started while waiting. status: {self.status}")
        if self.player_b is None:
            raise GameStateError("Cannot start a game without a second player.")
        self.turn = Side.PLAYER_A
        self.status = Status.IN_PROGRESS

    def abandon(self, quitter: str) -> None:
        """The opponent of the player quitting wins, whatever the board looks like."""
        self._assert_not_finished()
        side = self._assert_participant(quitter)
        winner = self.player_for(side.opponent)
        if winner is None:
            raise GameStateError("Cannot abandon a game that has no opponent yet.")
        self._finish(winner)

    def legal_moves(self, player: str) -> list[Move]:
        """All moves the player could make right now (mandatory capture applied)."""
        self._assert_in_progress()
        side = self._assert_participant(player)
        self._assert_your_turn(side)
        return all_legal_moves(self.board, side)

    def make_move(self, player: str, move: Move) -> MoveOutcome:
        return validate_and_apply(self, player, move)

    # -- PRIVATE HELPERS ---
    def _finish(self, winner: str) -> None:
        self.winner = winner
        self.turn = None
        self.status = Status.FINISHED

    def _assert_in_progress(self) -> None:
        if self.status != Status.IN_PROGRESS:
            raise GameStateError(f"Game is not in progress. status: {self.status}")

    def _assert_not_finished(self) -> None:
        if self.status == Status.FINISHED:
            raise GameStateError("Game is already finished.")

    def _assert_participant(self, identity: str) -> Side:
        side = self.side_of(identity)
        if side is None:
            raise NotAPlayerError(f"{identity} is not playing in game {self.game_id}.")
        return side

    def _assert_your_turn(self, side: Side) -> None:
        """You must wait for your turn before making a move."""
        if side != self.turn:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for player {self.player_for(self.turn) if self.turn else None} to make a move first."
            )


def validate_and_apply(game: Game, mover: str, move: Move) -> MoveOutcome:
    """
    The single entry point to change a game's board.
    ----

    1. game must be in progress and `mover` one of its players
    2. it must be `mover`'s turn
    3. both squares must be on the board
    4. the piece on the source square must belong to `mover`
    5. the destination must be reachable, and a jump when any capture is available
    6. apply (with auto-continued jumps and promotion), flip the turn, check for victory

    Every check runs before the board is touched: when this raises, the game is unchanged.
    """
    game._assert_in_progress()
    side = game._assert_participant(mover)
    game._assert_your_turn(side)

    for square in (move.from_square, move.to_square):
        if not square.is_within_bounds():
            raise OutOfBoundsError(f"Square ({square.row}, {square.col}) is off the board.")

    if not game.board.cell(move.from_square).belongs_to(side):
        raise WrongOwnerError(
            f"The piece on ({move.from_square.row}, {move.from_square.col}) is not yours."
        )

    accepted = _find_destination(game.board, move, side)
    if not accepted.is_jump and any_capture_available(game.board, side):
        raise CaptureRequiredError("A capture is available: you must jump.")

    outcome = apply_move(game.board, accepted, side)
    game.move_count += 1
    game.turn = side.opponent

    winning_side = check_victory(game.board)
    if winning_side is not None:
        winner = game.player_for(winning_side)
        # for the type checker: a game in progress always has both players
        assert winner is not None
        game._finish(winner)

    return outcome


def _find_destination(board: Board, move: Move, side: Side) -> Move:
    """Look the requested destination up among the reachable ones (carries the captured square along)."""
    for candidate in legal_destinations(board, move.from_square, side):
        if candidate.targets(move.to_square):
            return candidate
    raise IllegalMoveError(
        f"Move not allowed: ({move.from_square.row}, {move.from_square.col}) -> ({move.to_square.row}, {move.to_square.col})"
    )


def build_move(from_pair: tuple[int, int], to_pair: tuple[int, int]) -> Move:
    """Move as requested by a client: only the two squares, the captured piece is worked out by the rules."""
    return Move(from_square=Square.from_pair(from_pair), to_square=Square.from_pair(to_pair))
