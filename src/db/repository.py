"""Protocol repositories (implemented with SQLAlchemy in sql_repository.py)"""

from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from src.core.models import ChallengeModel, GameSessionModel, PlayerProfile
from src.core.shared_types import ChallengeStatus, GameResult, TerminationReason


class SessionStore(Protocol):
    """Keyed persistence for game sessions with compare-and-update on the version field."""

    def get_session(self, session_id: UUID) -> GameSessionModel | None:
        """Get session by ID, if record exists."""
        ...

    def compare_and_update(
        self, expected_version: int, session: GameSessionModel
    ) -> bool:
        """
        Replace the stored session with `session` only if the stored version still equals
        `expected_version` and the stored session is still active. Returns whether it was written.
        """
        ...

    def complete_session(
        self,
        session_id: UUID,
        result: GameResult,
        reason: TerminationReason,
        ended_at: datetime,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Mark an active session completed. Returns False if it was not active (or does not exist).
        With `expected_version`, also False if the stored version moved on since it was read.
        """
        ...


class ChallengeRepository(Protocol):
    """Persistence of challenges, including the atomic accept -> create session step."""

    def get_challenge(self, challenge_id: UUID) -> ChallengeModel | None: ...

    def create_challenge(self, challenge: ChallengeModel) -> ChallengeModel:
        """Raises DuplicateChallengeError if the pair already has a pending challenge."""
        ...

    def find_pending_between(
        self, player_a: UUID, player_b: UUID
    ) -> ChallengeModel | None:
        """A pending challenge between the two players, in either direction."""
        ...

    def resolve_pending(
        self,
        challenge_id: UUID,
        status: ChallengeStatus,
        responded_at: datetime,
        *,
        challenged_id: Optional[UUID] = None,
        challenger_id: Optional[UUID] = None,
    ) -> ChallengeModel | None:
        """
        Move a pending challenge to `status` if it matches the given participant(s).
        Returns None (and changes nothing) if no such pending challenge exists.
        """
        ...

    def accept_and_create_session(
        self,
        challenge_id: UUID,
        challenged_id: UUID,
        session: GameSessionModel,
        responded_at: datetime,
    ) -> ChallengeModel | None:
        """
        In one transaction: store `session` and mark the challenge accepted with its ID.
        Returns None (and stores nothing) if no matching pending challenge exists.
        """
        ...

    def list_received(self, user_id: UUID) -> list[ChallengeModel]: ...

    def list_sent(self, user_id: UUID) -> list[ChallengeModel]: ...


class PlayerDirectory(Protocol):
    """Read access to the public part of user accounts."""

    def get_profile(self, player_id: UUID) -> PlayerProfile | None: ...
