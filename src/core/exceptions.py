"""
Custom exceptions shared by every layer.

Each exception carries a short, stable `reason` code. That code is what gets sent back to a client in an ERROR event,
the human readable message is for the logs.
"""


class GameError(Exception):
    """Top level exception for anything that goes wrong while serving a game."""

    reason = "game_error"


# --- PROTOCOL ERRORS (reported to the offending connection only) ---
class ProtocolError(GameError):
    reason = "protocol_error"


class UnauthenticatedError(ProtocolError):
    reason = "unauthenticated"


class MessageTooLargeError(ProtocolError):
    reason = "message_too_large"


class RateLimitedError(ProtocolError):
    reason = "rate_limited"


class UnknownMessageError(ProtocolError):
    reason = "unknown_message_type"


class InvalidRequestError(GameError):
    reason = "invalid_request"


class InvalidTokenError(GameError):
    reason = "invalid_token"


# --- AUTHORIZATION ERRORS ---
class AuthorizationError(GameError):
    reason = "forbidden"


class NotAPlayerError(AuthorizationError):
    reason = "not_a_player"


class NotYourTurnError(AuthorizationError):
    reason = "not_your_turn"


class StaleStateError(NotYourTurnError):
    """The move was computed against a version of the game that is no longer current."""

    reason = "stale_state"


# --- RULE VIOLATIONS ---
class RuleViolationError(GameError):
    reason = "rule_violation"


class OutOfBoundsError(RuleViolationError):
    reason = "out_of_bounds"


class WrongOwnerError(RuleViolationError):
    reason = "wrong_owner"


class CaptureRequiredError(RuleViolationError):
    reason = "capture_required"


class IllegalMoveError(RuleViolationError):
    reason = "illegal_move"


class GameStateError(GameError):
    """Operation does not fit the lifecycle of the game (ex. moving in a finished game)."""

    reason = "invalid_game_state"


class InvalidBoardError(GameError):
    reason = "invalid_board"


# --- PERSISTENCE ---
class RepositoryError(GameError):
    reason = "repository_error"


class GameNotFoundError(RepositoryError):
    reason = "game_not_found"


class StorageError(RepositoryError):
    """Underlying storage failed. The only fatal condition while applying a move."""

    reason = "storage_failure"
