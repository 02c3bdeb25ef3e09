"""Implementation of the repositories using SQLAlchemy"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.core.exceptions import DuplicateChallengeError
from src.core.models import ChallengeModel, GameSessionModel, PlayerProfile
from src.core.shared_types import (
    ChallengeStatus,
    Color,
    GameResult,
    SessionStatus,
    TerminationReason,
)
from src.db.schema import DBChallenge, DBGameSession, DBPlayer

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _pair_key(player_a: UUID, player_b: UUID) -> str:
    """Same key whichever of the two players sent the challenge."""
    return ":".join(sorted((str(player_a), str(player_b))))


def _session_columns(session: GameSessionModel) -> dict[str, Any]:
    """Column values for a session row (everything except the primary key)."""
    return {
        "white_id": session.white_id,
        "black_id": session.black_id,
        "time_control": session.time_control,
        "current_fen": session.current_fen,
        "history_fen": list(session.history_fen),
        "moves": list(session.moves),
        "turn": str(session.turn),
        "version": session.version,
        "white_time_left": session.white_time_left,
        "black_time_left": session.black_time_left,
        "status": str(session.status),
        "result": str(session.result) if session.result else None,
        "reason": str(session.reason) if session.reason else None,
        "last_move_by": session.last_move_by,
        "last_move_at": session.last_move_at,
        "created_at": session.created_at,
        "ended_at": session.ended_at,
        "challenge_id": session.challenge_id,
    }


def _session_to_model(row: DBGameSession) -> GameSessionModel:
    """Convert SQLAlchemy model to data transfer model."""
    return GameSessionModel(
        id=row.id,
        white_id=row.white_id,
        black_id=row.black_id,
        time_control=row.time_control,
        current_fen=row.current_fen,
        history_fen=list(row.history_fen),
        moves=list(row.moves),
        turn=Color(row.turn),
        version=row.version,
        white_time_left=row.white_time_left,
        black_time_left=row.black_time_left,
        status=SessionStatus(row.status),
        result=GameResult(row.result) if row.result else None,
        reason=TerminationReason(row.reason) if row.reason else None,
        last_move_by=row.last_move_by,
        last_move_at=_as_utc(row.last_move_at),
        created_at=_as_utc(row.created_at),
        ended_at=_as_utc(row.ended_at),
        challenge_id=row.challenge_id,
    )


def _challenge_to_model(row: DBChallenge) -> ChallengeModel:
    return ChallengeModel(
        id=row.id,
        challenger_id=row.challenger_id,
        challenged_id=row.challenged_id,
        time_control=row.time_control,
        status=ChallengeStatus(row.status),
        created_at=_as_utc(row.created_at),
        responded_at=_as_utc(row.responded_at),
        session_id=row.session_id,
    )


class SQLSessionStore:
    """Game sessions stored using SQL. Every write is a single conditional UPDATE."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_session(self, session_id: UUID) -> GameSessionModel | None:
        """Get session by ID, if record exists."""
        query = (
            select(DBGameSession)
            .where(DBGameSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        row = self.db.scalar(query)
        if row:
            return _session_to_model(row)
        return None

    def compare_and_update(
        self, expected_version: int, session: GameSessionModel
    ) -> bool:
        """Write `session` if nobody else changed the stored one since `expected_version` was read."""
        statement = (
            update(DBGameSession)
            .where(
                DBGameSession.id == session.id,
                DBGameSession.version == expected_version,
                DBGameSession.status == SessionStatus.ACTIVE,
            )
            .values(**_session_columns(session))
            .execution_options(synchronize_session=False)
        )
        written = self.db.execute(statement).rowcount == 1
        if written:
            self.db.commit()
        else:
            self.db.rollback()
            logger.info(
                "Conditional update of session %s at version %d matched no row.",
                session.id,
                expected_version,
            )
        return written

    def complete_session(
        self,
        session_id: UUID,
        result: GameResult,
        reason: TerminationReason,
        ended_at: datetime,
        expected_version: Optional[int] = None,
    ) -> bool:
        """Mark an active session completed (at `expected_version`, if given). False if nothing matched."""
        conditions = [
            DBGameSession.id == session_id,
            DBGameSession.status == SessionStatus.ACTIVE,
        ]
        if expected_version is not None:
            conditions.append(DBGameSession.version == expected_version)

        statement = (
            update(DBGameSession)
            .where(*conditions)
            .values(
                status=str(SessionStatus.COMPLETED),
                result=str(result),
                reason=str(reason),
                ended_at=ended_at,
            )
            .execution_options(synchronize_session=False)
        )
        written = self.db.execute(statement).rowcount == 1
        if written:
            self.db.commit()
        else:
            self.db.rollback()
        return written


class SQLChallengeRepository:
    """Challenges stored using SQL. Acceptance also inserts the resulting session, in the same transaction."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_challenge(self, challenge_id: UUID) -> ChallengeModel | None:
        row = self._fetch_challenge(challenge_id)
        if row:
            return _challenge_to_model(row)
        return None

    def create_challenge(self, challenge: ChallengeModel) -> ChallengeModel:
        """Store a new challenge. The unique pending key makes a second pending one per pair fail here."""
        pending_key = None
        if challenge.status == ChallengeStatus.PENDING:
            pending_key = _pair_key(challenge.challenger_id, challenge.challenged_id)
        row = DBChallenge(
            id=challenge.id,
            challenger_id=challenge.challenger_id,
            challenged_id=challenge.challenged_id,
            time_control=challenge.time_control,
            status=str(challenge.status),
            created_at=challenge.created_at,
            pending_key=pending_key,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateChallengeError(
                f"A challenge between {challenge.challenger_id} and {challenge.challenged_id} is already pending."
            ) from e
        self.db.refresh(row)
        return _challenge_to_model(row)

    def find_pending_between(
        self, player_a: UUID, player_b: UUID
    ) -> ChallengeModel | None:
        query = select(DBChallenge).where(
            DBChallenge.status == ChallengeStatus.PENDING,
            or_(
                and_(
                    DBChallenge.challenger_id == player_a,
                    DBChallenge.challenged_id == player_b,
                ),
                and_(
                    DBChallenge.challenger_id == player_b,
                    DBChallenge.challenged_id == player_a,
                ),
            ),
        )
        row = self.db.scalars(query).first()
        if row:
            return _challenge_to_model(row)
        return None

    def resolve_pending(
        self,
        challenge_id: UUID,
        status: ChallengeStatus,
        responded_at: datetime,
        *,
        challenged_id: Optional[UUID] = None,
        challenger_id: Optional[UUID] = None,
    ) -> ChallengeModel | None:
        """Move a pending challenge to `status`, if it still is pending and matches the participant(s)."""
        if self._flip_pending(
            challenge_id,
            status,
            responded_at,
            challenged_id=challenged_id,
            challenger_id=challenger_id,
        ):
            self.db.commit()
            return self.get_challenge(challenge_id)
        self.db.rollback()
        return None

    def accept_and_create_session(
        self,
        challenge_id: UUID,
        challenged_id: UUID,
        session: GameSessionModel,
        responded_at: datetime,
    ) -> ChallengeModel | None:
        """Store the session and accept the challenge in one transaction. Nothing is stored if the flip fails."""
        self.db.add(DBGameSession(id=session.id, **_session_columns(session)))
        # The session row must exist before the challenge can reference it.
        self.db.flush()
        if not self._flip_pending(
            challenge_id,
            ChallengeStatus.ACCEPTED,
            responded_at,
            challenged_id=challenged_id,
            session_id=session.id,
        ):
            self.db.rollback()
            return None
        self.db.commit()
        return self.get_challenge(challenge_id)

    def list_received(self, user_id: UUID) -> list[ChallengeModel]:
        query = (
            select(DBChallenge)
            .where(
                DBChallenge.challenged_id == user_id,
                DBChallenge.status == ChallengeStatus.PENDING,
            )
            .order_by(DBChallenge.created_at)
        )
        return [_challenge_to_model(row) for row in self.db.scalars(query)]

    def list_sent(self, user_id: UUID) -> list[ChallengeModel]:
        query = (
            select(DBChallenge)
            .where(
                DBChallenge.challenger_id == user_id,
                DBChallenge.status.in_(
                    [ChallengeStatus.PENDING, ChallengeStatus.ACCEPTED]
                ),
            )
            .order_by(DBChallenge.created_at)
        )
        return [_challenge_to_model(row) for row in self.db.scalars(query)]

    # -- Internal helpers --
    def _fetch_challenge(self, challenge_id: UUID) -> DBChallenge | None:
        query = (
            select(DBChallenge)
            .where(DBChallenge.id == challenge_id)
            .execution_options(populate_existing=True)
        )
        return self.db.scalar(query)

    def _flip_pending(
        self,
        challenge_id: UUID,
        status: ChallengeStatus,
        responded_at: datetime,
        *,
        challenged_id: Optional[UUID] = None,
        challenger_id: Optional[UUID] = None,
        session_id: Optional[UUID] = None,
    ) -> bool:
        """Conditional UPDATE on status == pending. Does not commit."""
        conditions = [
            DBChallenge.id == challenge_id,
            DBChallenge.status == ChallengeStatus.PENDING,
        ]
        if challenged_id is not None:
            conditions.append(DBChallenge.challenged_id == challenged_id)
        if challenger_id is not None:
            conditions.append(DBChallenge.challenger_id == challenger_id)

        values: dict[str, Any] = {
            "status": str(status),
            "responded_at": responded_at,
            "pending_key": None,
        }
        if session_id is not None:
            values["session_id"] = session_id

        statement = (
            update(DBChallenge)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(statement).rowcount == 1


class SQLPlayerDirectory:
    """Public player profiles read from the players table."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_profile(self, player_id: UUID) -> PlayerProfile | None:
        row = self.db.get(DBPlayer, player_id)
        if row is None:
            return None
        return PlayerProfile(id=row.id, username=row.username, rating=row.rating)
