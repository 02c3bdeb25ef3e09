"""
Chess club live-session API.

Run with: uvicorn src.api.app:create_app --factory
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from src.api.routes import challenges_router, sessions_router
from src.core.config import Settings, get_settings
from src.core.exceptions import (
    AuthenticationError,
    ChallengeNotFoundError,
    ChessClubError,
    DuplicateChallengeError,
    GameAlreadyCompletedError,
    GameNotFoundError,
    InvalidMoveError,
    InvalidRequestError,
    NotParticipantError,
    NotYourTurnError,
    PlayerNotFoundError,
    StaleVersionError,
)
from src.db.database import build_engine, build_session_factory
from src.rules.engine import PythonChessRules, RulesEngine
from src.services.result_recorder import LoggingResultRecorder, ResultRecorder

logger = logging.getLogger(__name__)

# Most specific class wins (lookup walks the exception's MRO).
ERROR_STATUS_CODES: dict[type[ChessClubError], int] = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotParticipantError: status.HTTP_403_FORBIDDEN,
    GameNotFoundError: status.HTTP_404_NOT_FOUND,
    ChallengeNotFoundError: status.HTTP_404_NOT_FOUND,
    PlayerNotFoundError: status.HTTP_404_NOT_FOUND,
    GameAlreadyCompletedError: status.HTTP_409_CONFLICT,
    NotYourTurnError: status.HTTP_400_BAD_REQUEST,
    InvalidMoveError: status.HTTP_400_BAD_REQUEST,
    StaleVersionError: status.HTTP_400_BAD_REQUEST,
    DuplicateChallengeError: status.HTTP_400_BAD_REQUEST,
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
}


def status_code_for(error: ChessClubError) -> int:
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def handle_chess_club_error(request: Request, exc: Exception) -> JSONResponse:
    code = status_code_for(exc)
    logger.info("%s %s rejected (%d): %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def handle_store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    """Store is down: the client's next poll cycle is the retry."""
    logger.error("Database unavailable during %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable, retry shortly."},
    )


def create_app(
    settings: Optional[Settings] = None,
    rules: Optional[RulesEngine] = None,
    recorder: Optional[ResultRecorder] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Chess Club Live Sessions")
    engine = build_engine(settings.database_url, echo=settings.debug)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.rules = rules or PythonChessRules()
    app.state.recorder = recorder or LoggingResultRecorder()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ChessClubError, handle_chess_club_error)
    app.add_exception_handler(OperationalError, handle_store_unavailable)
    app.include_router(challenges_router)
    app.include_router(sessions_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Live-session API ready (database: %s).", engine.url.render_as_string(hide_password=True))
    return app
