"""Downstream consumer of finished games (ratings, statistics)."""

import logging
from typing import Protocol

from src.core.models import GameSessionModel

logger = logging.getLogger(__name__)


class ResultRecorder(Protocol):
    def record(self, session: GameSessionModel) -> None:
        """Called once per completed session. Failures are the recorder's problem, not the game's."""
        ...


class LoggingResultRecorder:
    """Default recorder: writes one log line per finished game."""

    def record(self, session: GameSessionModel) -> None:
        logger.info(
            "Game %s finished: white=%s black=%s result=%s reason=%s time_control=%ds moves=%d",
            session.id,
            session.white_id,
            session.black_id,
            session.result,
            session.reason,
            session.time_control,
            session.version,
        )
