"""
Clock accounting: elapsed wall-clock time since the last recorded move is charged to the side that moves.

Pure functions only; persisting the result is the MoveProcessor's job.
"""

from datetime import datetime

from src.core.models import GameSessionModel
from src.core.shared_types import Color


def elapsed_seconds(since: datetime, now: datetime) -> float:
    """Wall-clock seconds between two instants (never negative, even with a clock step backwards)."""
    return max(0.0, (now - since).total_seconds())


def deduct(previous: float, elapsed: float) -> float:
    """New clock value for the mover, floored at zero."""
    return max(0.0, previous - elapsed)


def is_exhausted(previous: float, elapsed: float) -> bool:
    """The mover's flag fell before (or exactly when) the move arrived."""
    return elapsed >= previous


def remaining_for(session: GameSessionModel, color: Color, now: datetime) -> float:
    """
    Live remaining time of `color`, without touching the stored session.

    Only the side to move of an active session is running; every other clock reads as stored.
    """
    stored = session.time_left(color)
    if not session.is_active or session.turn != color:
        return stored
    return deduct(stored, elapsed_seconds(session.last_move_at, now))
