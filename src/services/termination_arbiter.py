"""
Finalization of game sessions.

A session goes from active to completed exactly once. Whoever gets there first (a terminal move,
a flag fall, a resignation, an agreed draw) decides the result; later attempts are no-ops.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from src.core.exceptions import (
    GameNotFoundError,
    InvalidRequestError,
    NotParticipantError,
    StaleVersionError,
)
from src.core.models import GameSessionModel, utc_now
from src.core.shared_types import (
    Color,
    GameResult,
    SessionStatus,
    TerminationReason,
)
from src.db.repository import SessionStore
from src.services.clock_accountant import remaining_for
from src.services.result_recorder import LoggingResultRecorder, ResultRecorder

logger = logging.getLogger(__name__)


class TerminationArbiter:
    """Ends sessions and tells the result recorder about it."""

    def __init__(
        self,
        store: SessionStore,
        recorder: Optional[ResultRecorder] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.recorder = recorder or LoggingResultRecorder()
        self.now = now

    # -- Entry points ---
    def end_session(
        self,
        session_id: UUID,
        result: GameResult,
        reason: TerminationReason,
        expected_version: Optional[int] = None,
    ) -> GameSessionModel:
        """
        Complete an active session. An already completed session is returned untouched.
        ----
        Resignation and agreed draw end the game whatever the position, so they only need the session to be active.
        A result that depends on the position (timeout claim) passes the `expected_version` it was decided on;
        if a move got in first, StaleVersionError is raised and nothing is written.
        """
        session = self._fetch_session(session_id)
        if not session.is_active:
            logger.info(
                "Session %s already completed (%s, %s); ignoring %s.",
                session_id,
                session.result,
                session.reason,
                reason,
            )
            return session

        if self.store.complete_session(
            session_id, result, reason, self.now(), expected_version
        ):
            completed = self._fetch_session(session_id)
            self.announce(completed)
            return completed

        current = self._fetch_session(session_id)
        if current.is_active:
            logger.warning(
                "Session %s: %s at version %s lost to a move (now version %d).",
                session_id,
                reason,
                expected_version,
                current.version,
            )
            raise StaleVersionError(
                f"Game session {session_id} changed since version {expected_version}; reload and retry."
            )
        # Someone else completed it in the meantime. Their result stands.
        return current

    def resign(
        self, session_id: UUID, user_id: UUID, result: Optional[GameResult] = None
    ) -> GameSessionModel:
        """The resigning player's opponent wins. A `result` sent along has to say the same."""
        session = self._fetch_session(session_id)
        color = self._seat_of(session, user_id)
        winner = GameResult.win_for(color.opponent)
        if result is not None and result != winner:
            raise InvalidRequestError(
                f"Resigning as {color} ends the game {winner}, not {result}."
            )
        return self.end_session(session_id, winner, TerminationReason.RESIGNATION)

    def agree_draw(self, session_id: UUID, user_id: UUID) -> GameSessionModel:
        session = self._fetch_session(session_id)
        self._seat_of(session, user_id)
        return self.end_session(
            session_id, GameResult.DRAW, TerminationReason.DRAW_AGREEMENT
        )

    def claim_timeout(self, session_id: UUID, user_id: UUID) -> GameSessionModel:
        """
        A participant claims the side to move has run out of time.
        ----
        Verified against the stored clock and the time of the last move; nothing the client says about time is used.
        """
        session = self._fetch_session(session_id)
        self._seat_of(session, user_id)
        if not session.is_active:
            return session

        flagged = session.turn
        if remaining_for(session, flagged, self.now()) > 0:
            raise InvalidRequestError(f"{flagged} still has time left on the clock.")
        return self.end_session(
            session_id,
            GameResult.win_for(flagged.opponent),
            TerminationReason.TIMEOUT,
            expected_version=session.version,
        )

    # -- Used by the MoveProcessor, which folds the termination into the move's own write ---
    def conclude(
        self,
        session: GameSessionModel,
        result: GameResult,
        reason: TerminationReason,
        ended_at: datetime,
    ) -> GameSessionModel:
        """Completed copy of an active session. Pure; the caller persists it."""
        return replace(
            session,
            status=SessionStatus.COMPLETED,
            result=result,
            reason=reason,
            ended_at=ended_at,
        )

    def announce(self, session: GameSessionModel) -> None:
        """Fire and forget: hand a freshly completed session to the result recorder."""
        logger.info(
            "Session %s completed: %s by %s.", session.id, session.result, session.reason
        )
        try:
            self.recorder.record(session)
        except Exception:
            logger.exception("Result recorder failed for session %s.", session.id)

    # -- Internal helpers --
    def _fetch_session(self, session_id: UUID) -> GameSessionModel:
        session = self.store.get_session(session_id)
        if session is None:
            raise GameNotFoundError(f"Game session with {session_id=} not found.")
        return session

    @staticmethod
    def _seat_of(session: GameSessionModel, user_id: UUID) -> Color:
        color = session.color_of(user_id)
        if color is None:
            raise NotParticipantError(
                f"Player {user_id} is not playing in session {session.id}."
            )
        return color
