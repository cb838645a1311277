"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Side(StrEnum):
    PLAYER_A = "player_a"
    PLAYER_B = "player_b"

    @property
    def opponent(self) -> "Side":
        return Side.PLAYER_B if self == Side.PLAYER_A else Side.PLAYER_A


class Role(StrEnum):
    """How a connection takes part in a game room"""

    PLAYER = "player"
    SPECTATOR = "spectator"


class PresenceStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"
    IN_GAME = "in_game"
