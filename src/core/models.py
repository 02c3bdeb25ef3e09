"""
Boundary layer data model(s).

These objects are used to communicate with the Services.
Both the API layer (higher) and the db layer (lower) send/receive the models defined here,
which decouples the SQL tables and the HTTP schemas from what the services actually need.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from src.core.shared_types import (
    ChallengeStatus,
    Color,
    GameResult,
    SessionStatus,
    TerminationReason,
)

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
DEFAULT_RATING = 1200
UNKNOWN_USERNAME = "Unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChallengeModel:
    """An invitation from one player to another to start a session."""

    id: UUID
    challenger_id: UUID
    challenged_id: UUID
    time_control: int
    status: ChallengeStatus
    created_at: datetime
    responded_at: Optional[datetime] = None
    session_id: Optional[UUID] = None


@dataclass
class GameSessionModel:
    """Authoritative state of one live (or finished) two-player game."""

    id: UUID
    white_id: UUID
    black_id: UUID
    time_control: int
    current_fen: str
    history_fen: list[str]
    moves: list[str]
    turn: Color
    version: int
    white_time_left: float
    black_time_left: float
    status: SessionStatus
    created_at: datetime
    last_move_at: datetime
    result: Optional[GameResult] = None
    reason: Optional[TerminationReason] = None
    last_move_by: Optional[UUID] = None
    ended_at: Optional[datetime] = None
    challenge_id: Optional[UUID] = None

    @classmethod
    def new_session(
        cls,
        session_id: UUID,
        white_id: UUID,
        black_id: UUID,
        time_control: int,
        created_at: datetime,
        challenge_id: Optional[UUID] = None,
    ) -> "GameSessionModel":
        """Starting state: version 0, white to move, both clocks full."""
        return cls(
            id=session_id,
            white_id=white_id,
            black_id=black_id,
            time_control=time_control,
            current_fen=STARTING_FEN,
            history_fen=[],
            moves=[],
            turn=Color.WHITE,
            version=0,
            white_time_left=float(time_control),
            black_time_left=float(time_control),
            status=SessionStatus.ACTIVE,
            created_at=created_at,
            last_move_at=created_at,
            challenge_id=challenge_id,
        )

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def color_of(self, player_id: UUID) -> Optional[Color]:
        """Seat of the player, or None for a non-participant."""
        if player_id == self.white_id:
            return Color.WHITE
        if player_id == self.black_id:
            return Color.BLACK
        return None

    def player_of(self, color: Color) -> UUID:
        return self.white_id if color == Color.WHITE else self.black_id

    def time_left(self, color: Color) -> float:
        return self.white_time_left if color == Color.WHITE else self.black_time_left


@dataclass
class PlayerProfile:
    """Public summary of a player, as shown next to the board."""

    id: UUID
    username: str = UNKNOWN_USERNAME
    rating: int = DEFAULT_RATING


@dataclass
class SessionView:
    """What a participant gets to see: the session, both public profiles and the live clocks."""

    session: GameSessionModel
    profiles: dict[Color, PlayerProfile]
    white_clock: float
    black_clock: float


@dataclass
class PollResult:
    """Outcome of one poll. `view` is only filled in when the session is newer than what the client holds."""

    has_updates: bool
    status: SessionStatus
    result: Optional[GameResult] = None
    view: Optional[SessionView] = None
