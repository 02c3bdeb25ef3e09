"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class SessionStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ChallengeStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class Decision(StrEnum):
    ACCEPT = "accept"
    DECLINE = "decline"


class TerminationReason(StrEnum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    THREEFOLD_REPETITION = "threefold_repetition"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    FIFTY_MOVE_RULE = "fifty_move_rule"
    TIMEOUT = "timeout"
    RESIGNATION = "resignation"
    DRAW_AGREEMENT = "draw_agreement"


class GameResult(StrEnum):
    WHITE_WINS = "1-0"
    BLACK_WINS = "0-1"
    DRAW = "1/2-1/2"

    @classmethod
    def win_for(cls, color: Color) -> "GameResult":
        return cls.WHITE_WINS if color == Color.WHITE else cls.BLACK_WINS


# --- Reasons a participant may invoke directly. Everything else is decided by the rules engine or the clock.
PARTICIPANT_REASONS = frozenset(
    {TerminationReason.RESIGNATION, TerminationReason.DRAW_AGREEMENT}
)
