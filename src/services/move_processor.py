"""
Accepting moves on a live session.

A move is checked (session exists, is active, mover is seated and on turn), handed to the rules engine,
and then written with a single compare-and-update on the version that was read.
If the move ends the game (flag fall or a terminal position) the completion is part of that same write.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, NoReturn
from uuid import UUID

from src.core.exceptions import (
    GameAlreadyCompletedError,
    GameNotFoundError,
    NotParticipantError,
    NotYourTurnError,
    StaleVersionError,
)
from src.core.models import GameSessionModel, utc_now
from src.core.shared_types import Color, GameResult, TerminationReason
from src.db.repository import SessionStore
from src.rules.engine import AppliedMove, RulesEngine
from src.services.clock_accountant import deduct, elapsed_seconds, is_exhausted
from src.services.termination_arbiter import TerminationArbiter

logger = logging.getLogger(__name__)


@dataclass
class MoveOutcome:
    version: int
    turn: Color
    session: GameSessionModel


def advance(
    session: GameSessionModel,
    applied: AppliedMove,
    mover_id: UUID,
    mover_clock: float,
    moved_at: datetime,
) -> GameSessionModel:
    """
    Pure transition of an active session by one accepted move.

    Appends the move (and the position it was played from), flips the turn, bumps the version
    and sets the mover's clock. The opponent's clock is left as it was.
    """
    mover = session.turn
    clocks = (
        {"white_time_left": mover_clock}
        if mover == Color.WHITE
        else {"black_time_left": mover_clock}
    )
    return replace(
        session,
        current_fen=applied.position,
        history_fen=[*session.history_fen, session.current_fen],
        moves=[*session.moves, applied.notation],
        turn=mover.opponent,
        version=session.version + 1,
        last_move_by=mover_id,
        last_move_at=moved_at,
        **clocks,
    )


class MoveProcessor:
    """Turn-ordered, versioned application of moves."""

    def __init__(
        self,
        store: SessionStore,
        rules: RulesEngine,
        arbiter: TerminationArbiter,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.rules = rules
        self.arbiter = arbiter
        self.now = now

    def submit_move(
        self, session_id: UUID, acting_user_id: UUID, move_notation: str
    ) -> MoveOutcome:
        """Validate and apply one move. Raises before anything is written if the move is rejected."""

        session = self.store.get_session(session_id)
        if session is None:
            raise GameNotFoundError(f"Game session with {session_id=} not found.")
        if not session.is_active:
            raise GameAlreadyCompletedError(
                f"Game session {session_id} is over: {session.result} by {session.reason}."
            )

        color = session.color_of(acting_user_id)
        if color is None:
            raise NotParticipantError(
                f"Player {acting_user_id} is not playing in session {session_id}."
            )
        if color != session.turn:
            raise NotYourTurnError(
                f"It is {session.turn}'s turn, {acting_user_id} plays {color}."
            )

        # The resulting position always comes from the rules engine, never from the client.
        applied = self.rules.apply_move(session.current_fen, move_notation)

        moved_at = self.now()
        elapsed = elapsed_seconds(session.last_move_at, moved_at)
        previous_clock = session.time_left(color)
        after = advance(
            session,
            applied,
            acting_user_id,
            deduct(previous_clock, elapsed),
            moved_at,
        )
        after = self._settle(after, color, is_exhausted(previous_clock, elapsed))

        if not self.store.compare_and_update(session.version, after):
            self._raise_conflict(session_id, session.version)

        logger.info(
            "Session %s: %s played %s (version %d).",
            session_id,
            color,
            applied.notation,
            after.version,
        )
        if not after.is_active:
            self.arbiter.announce(after)
        return MoveOutcome(version=after.version, turn=after.turn, session=after)

    # -- Internal helpers --
    def _settle(
        self, after: GameSessionModel, mover: Color, flag_fell: bool
    ) -> GameSessionModel:
        """Complete the session if the move ended the game. A fallen flag beats anything on the board."""
        if flag_fell:
            return self.arbiter.conclude(
                after,
                GameResult.win_for(mover.opponent),
                TerminationReason.TIMEOUT,
                after.last_move_at,
            )

        reason = self.rules.is_terminal(after.current_fen, after.history_fen)
        if reason is None:
            return after
        result = (
            GameResult.win_for(mover)
            if reason == TerminationReason.CHECKMATE
            else GameResult.DRAW
        )
        return self.arbiter.conclude(after, result, reason, after.last_move_at)

    def _raise_conflict(self, session_id: UUID, read_version: int) -> NoReturn:
        """The conditional write matched nothing: somebody else changed the session after it was read."""
        current = self.store.get_session(session_id)
        logger.warning(
            "Session %s: stale move at version %d (now %s).",
            session_id,
            read_version,
            f"version {current.version}, {current.status}" if current else "gone",
        )
        raise StaleVersionError(
            f"Game session {session_id} changed since version {read_version}; reload and retry if it is still your turn."
        )
