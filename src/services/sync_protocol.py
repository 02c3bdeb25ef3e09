"""
Read side of live play.

Both clients poll independently with the last version they hold. Nothing in here writes to the store:
clocks are projected for display, never persisted on read.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from src.core.exceptions import GameNotFoundError, NotParticipantError
from src.core.models import (
    GameSessionModel,
    PlayerProfile,
    PollResult,
    SessionView,
    utc_now,
)
from src.core.shared_types import Color
from src.db.repository import PlayerDirectory, SessionStore
from src.services.clock_accountant import remaining_for


class SyncProtocol:
    """Full-state reads and version-based polling for session participants."""

    def __init__(
        self,
        store: SessionStore,
        players: PlayerDirectory,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.players = players
        self.now = now

    def get(self, session_id: UUID, viewer_id: UUID) -> SessionView:
        """Current session with both players' public profiles."""
        session = self._fetch_for(session_id, viewer_id)
        return self._view(session)

    def poll(
        self, session_id: UUID, viewer_id: UUID, last_version_seen: int
    ) -> PollResult:
        """
        The whole session if it is newer than `last_version_seen`, else a no-update signal.
        ----
        The payload replaces the client's state wholesale, so late or repeated responses are harmless.
        Status and result are always included: a resignation ends the game without a new version.
        """
        session = self._fetch_for(session_id, viewer_id)
        if session.version > last_version_seen:
            return PollResult(
                has_updates=True,
                status=session.status,
                result=session.result,
                view=self._view(session),
            )
        return PollResult(
            has_updates=False, status=session.status, result=session.result
        )

    # -- Internal helpers --
    def _fetch_for(self, session_id: UUID, viewer_id: UUID) -> GameSessionModel:
        session = self.store.get_session(session_id)
        if session is None:
            raise GameNotFoundError(f"Game session with {session_id=} not found.")
        if session.color_of(viewer_id) is None:
            raise NotParticipantError(
                f"Player {viewer_id} is not playing in session {session_id}."
            )
        return session

    def _view(self, session: GameSessionModel) -> SessionView:
        now = self.now()
        profiles = {
            color: self.players.get_profile(session.player_of(color))
            or PlayerProfile(id=session.player_of(color))
            for color in Color
        }
        return SessionView(
            session=session,
            profiles=profiles,
            white_clock=remaining_for(session, Color.WHITE, now),
            black_clock=remaining_for(session, Color.BLACK, now),
        )
