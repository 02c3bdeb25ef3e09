"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from src.core.exceptions import InvalidRequestError
from src.core.models import ChallengeModel, PlayerProfile, PollResult, SessionView
from src.core.shared_types import (
    PARTICIPANT_REASONS,
    ChallengeStatus,
    Color,
    Decision,
    GameResult,
    SessionStatus,
    TerminationReason,
)

MAX_MOVE_LENGTH = 10


# --- REQUEST MODELS ---
class SendChallengeRequest(BaseModel):
    challenged_id: UUID
    time_control: int

    @field_validator("time_control")
    @classmethod
    def validate_time_control(cls, value: int) -> int:
        if value <= 0:
            raise InvalidRequestError(
                f"Time control must be a positive number of seconds, got {value}."
            )
        return value


class RespondChallengeRequest(BaseModel):
    challenge_id: UUID
    decision: Decision


class MoveRequest(BaseModel):
    move: str

    @field_validator("move")
    @classmethod
    def validate_move(cls, value: str) -> str:
        value = value.strip()
        if not value or len(value) > MAX_MOVE_LENGTH:
            raise InvalidRequestError(
                f"Cannot interpret {value!r} as a move in SAN or UCI notation."
            )
        return value


class EndSessionRequest(BaseModel):
    """
    Participant-initiated end of a game: resignation or agreed draw.
    ----
    The result of a resignation is decided on the server (the opponent of the requester wins),
    so `result` may be omitted; if supplied it has to agree with the reason (and, for a resignation,
    with the requester's seat, which is checked by the TerminationArbiter).
    """

    reason: TerminationReason
    result: Optional[GameResult] = None

    @model_validator(mode="after")
    def validate_reason(self) -> Self:
        if self.reason not in PARTICIPANT_REASONS:
            raise InvalidRequestError(
                f"A game cannot be ended by request with reason {self.reason!r}."
            )
        if self.reason == TerminationReason.DRAW_AGREEMENT and self.result not in (
            None,
            GameResult.DRAW,
        ):
            raise InvalidRequestError("An agreed draw can only end in 1/2-1/2.")
        if (
            self.reason == TerminationReason.RESIGNATION
            and self.result == GameResult.DRAW
        ):
            raise InvalidRequestError("A resignation cannot end in a draw.")
        return self


# --- RESPONSE MODELS ---
class PlayerSummary(BaseModel):
    id: UUID
    username: str
    rating: int

    @classmethod
    def from_profile(cls, profile: PlayerProfile) -> Self:
        return cls(id=profile.id, username=profile.username, rating=profile.rating)


class SendChallengeResponse(BaseModel):
    challenge_id: UUID


class RespondChallengeResponse(BaseModel):
    challenge_id: UUID
    status: ChallengeStatus
    session_id: Optional[UUID] = None


class ChallengeSummary(BaseModel):
    id: UUID
    opponent: PlayerSummary
    time_control: int
    status: ChallengeStatus
    session_id: Optional[UUID]
    created_at: datetime

    @classmethod
    def from_model(cls, challenge: ChallengeModel, opponent: PlayerProfile) -> Self:
        return cls(
            id=challenge.id,
            opponent=PlayerSummary.from_profile(opponent),
            time_control=challenge.time_control,
            status=challenge.status,
            session_id=challenge.session_id,
            created_at=challenge.created_at,
        )


class SessionResponse(BaseModel):
    session_id: UUID
    white: PlayerSummary
    black: PlayerSummary
    time_control: int
    fen: str
    moves: list[str]
    turn: Color
    version: int
    white_time_left: float
    black_time_left: float
    status: SessionStatus
    result: Optional[GameResult]
    reason: Optional[TerminationReason]
    last_move_by: Optional[UUID]
    last_move_at: datetime
    created_at: datetime
    ended_at: Optional[datetime]

    @classmethod
    def from_view(cls, view: SessionView) -> Self:
        """Clocks are the live (projected) values; everything else is the stored session."""
        session = view.session
        return cls(
            session_id=session.id,
            white=PlayerSummary.from_profile(view.profiles[Color.WHITE]),
            black=PlayerSummary.from_profile(view.profiles[Color.BLACK]),
            time_control=session.time_control,
            fen=session.current_fen,
            moves=session.moves,
            turn=session.turn,
            version=session.version,
            white_time_left=view.white_clock,
            black_time_left=view.black_clock,
            status=session.status,
            result=session.result,
            reason=session.reason,
            last_move_by=session.last_move_by,
            last_move_at=session.last_move_at,
            created_at=session.created_at,
            ended_at=session.ended_at,
        )


class PollResponse(BaseModel):
    has_updates: bool
    status: SessionStatus
    result: Optional[GameResult] = None
    session: Optional[SessionResponse] = None

    @classmethod
    def from_result(cls, poll: PollResult) -> Self:
        return cls(
            has_updates=poll.has_updates,
            status=poll.status,
            result=poll.result,
            session=SessionResponse.from_view(poll.view) if poll.view else None,
        )


class MoveResponse(BaseModel):
    version: int
    turn: Color
    status: SessionStatus
    result: Optional[GameResult] = None
    reason: Optional[TerminationReason] = None


class SessionEndResponse(BaseModel):
    session_id: UUID
    status: SessionStatus
    result: Optional[GameResult]
    reason: Optional[TerminationReason]
