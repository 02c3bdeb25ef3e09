"""Invitations between two players, and turning an accepted one into a live session."""

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID, uuid4

from src.core.exceptions import (
    ChallengeNotFoundError,
    DuplicateChallengeError,
    InvalidRequestError,
    PlayerNotFoundError,
)
from src.core.models import ChallengeModel, GameSessionModel, utc_now
from src.core.shared_types import ChallengeStatus, Decision
from src.db.repository import ChallengeRepository, PlayerDirectory

logger = logging.getLogger(__name__)


class ChallengeBroker:
    """Send / respond / cancel challenges."""

    def __init__(
        self,
        challenges: ChallengeRepository,
        players: PlayerDirectory,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.challenges = challenges
        self.players = players
        self.now = now

    def send(
        self, challenger_id: UUID, challenged_id: UUID, time_control: int
    ) -> ChallengeModel:
        """Create a pending challenge, unless one is already pending between the two players."""
        if challenger_id == challenged_id:
            raise InvalidRequestError("Cannot challenge yourself.")
        if time_control <= 0:
            raise InvalidRequestError(
                f"Time control must be a positive number of seconds, got {time_control}."
            )
        if self.players.get_profile(challenged_id) is None:
            raise PlayerNotFoundError(f"Player {challenged_id} not found.")
        if self.challenges.find_pending_between(challenger_id, challenged_id):
            raise DuplicateChallengeError(
                f"A challenge between {challenger_id} and {challenged_id} is already pending."
            )

        challenge = self.challenges.create_challenge(
            ChallengeModel(
                id=uuid4(),
                challenger_id=challenger_id,
                challenged_id=challenged_id,
                time_control=time_control,
                status=ChallengeStatus.PENDING,
                created_at=self.now(),
            )
        )
        logger.info(
            "Challenge %s: %s -> %s (%ds).",
            challenge.id,
            challenger_id,
            challenged_id,
            time_control,
        )
        return challenge

    def respond(
        self, challenge_id: UUID, challenged_id: UUID, decision: Decision
    ) -> ChallengeModel:
        """
        Accept or decline a pending challenge addressed to `challenged_id`.

        Accepting creates the session (challenger plays white) and marks the challenge accepted
        in one transaction, so neither can exist without the other.
        """
        challenge = self.challenges.get_challenge(challenge_id)
        if (
            challenge is None
            or challenge.challenged_id != challenged_id
            or challenge.status != ChallengeStatus.PENDING
        ):
            raise ChallengeNotFoundError(
                f"No pending challenge {challenge_id} for player {challenged_id}."
            )

        responded_at = self.now()
        if decision == Decision.DECLINE:
            resolved = self.challenges.resolve_pending(
                challenge_id,
                ChallengeStatus.DECLINED,
                responded_at,
                challenged_id=challenged_id,
            )
        else:
            session = GameSessionModel.new_session(
                session_id=uuid4(),
                white_id=challenge.challenger_id,
                black_id=challenge.challenged_id,
                time_control=challenge.time_control,
                created_at=responded_at,
                challenge_id=challenge.id,
            )
            resolved = self.challenges.accept_and_create_session(
                challenge_id, challenged_id, session, responded_at
            )

        # Cancelled (or answered) between our read and our write
        if resolved is None:
            raise ChallengeNotFoundError(
                f"No pending challenge {challenge_id} for player {challenged_id}."
            )
        logger.info(
            "Challenge %s %s by %s (session: %s).",
            challenge_id,
            resolved.status,
            challenged_id,
            resolved.session_id,
        )
        return resolved

    def cancel(self, challenge_id: UUID, requester_id: UUID) -> ChallengeModel:
        """Only the challenger may cancel, and only while the challenge is pending."""
        cancelled = self.challenges.resolve_pending(
            challenge_id,
            ChallengeStatus.CANCELLED,
            self.now(),
            challenger_id=requester_id,
        )
        if cancelled is None:
            raise ChallengeNotFoundError(
                f"No pending challenge {challenge_id} sent by player {requester_id}."
            )
        logger.info("Challenge %s cancelled.", challenge_id)
        return cancelled

    def received(self, user_id: UUID) -> list[ChallengeModel]:
        """Pending challenges waiting for this player's answer."""
        return self.challenges.list_received(user_id)

    def sent(self, user_id: UUID) -> list[ChallengeModel]:
        """This player's pending and accepted challenges (accepted ones carry the session ID)."""
        return self.challenges.list_sent(user_id)
