"""HTTP routes: translate requests into service calls and service results into responses."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from src.api.auth import get_acting_user
from src.api.models import (
    ChallengeSummary,
    EndSessionRequest,
    MoveRequest,
    MoveResponse,
    PollResponse,
    RespondChallengeRequest,
    RespondChallengeResponse,
    SendChallengeRequest,
    SendChallengeResponse,
    SessionEndResponse,
    SessionResponse,
)
from src.core.models import ChallengeModel, GameSessionModel, PlayerProfile
from src.core.shared_types import TerminationReason
from src.db.database import get_db
from src.db.sql_repository import (
    SQLChallengeRepository,
    SQLPlayerDirectory,
    SQLSessionStore,
)
from src.services.challenge_broker import ChallengeBroker
from src.services.move_processor import MoveProcessor
from src.services.sync_protocol import SyncProtocol
from src.services.termination_arbiter import TerminationArbiter

DbSession = Annotated[Session, Depends(get_db)]
ActingUser = Annotated[UUID, Depends(get_acting_user)]


# -- Service wiring --
def get_arbiter(request: Request, db: DbSession) -> TerminationArbiter:
    return TerminationArbiter(SQLSessionStore(db), request.app.state.recorder)


def get_broker(db: DbSession) -> ChallengeBroker:
    return ChallengeBroker(SQLChallengeRepository(db), SQLPlayerDirectory(db))


def get_move_processor(
    request: Request,
    db: DbSession,
    arbiter: Annotated[TerminationArbiter, Depends(get_arbiter)],
) -> MoveProcessor:
    return MoveProcessor(SQLSessionStore(db), request.app.state.rules, arbiter)


def get_sync(db: DbSession) -> SyncProtocol:
    return SyncProtocol(SQLSessionStore(db), SQLPlayerDirectory(db))


def get_players(db: DbSession) -> SQLPlayerDirectory:
    return SQLPlayerDirectory(db)


Broker = Annotated[ChallengeBroker, Depends(get_broker)]
Arbiter = Annotated[TerminationArbiter, Depends(get_arbiter)]
Processor = Annotated[MoveProcessor, Depends(get_move_processor)]
Sync = Annotated[SyncProtocol, Depends(get_sync)]
Players = Annotated[SQLPlayerDirectory, Depends(get_players)]


challenges_router = APIRouter(prefix="/challenges", tags=["challenges"])
sessions_router = APIRouter(prefix="/sessions", tags=["sessions"])


# --- CHALLENGES ---
@challenges_router.post("", response_model=SendChallengeResponse)
def send_challenge(
    body: SendChallengeRequest, user_id: ActingUser, broker: Broker
) -> SendChallengeResponse:
    challenge = broker.send(user_id, body.challenged_id, body.time_control)
    return SendChallengeResponse(challenge_id=challenge.id)


@challenges_router.patch("/respond", response_model=RespondChallengeResponse)
def respond_to_challenge(
    body: RespondChallengeRequest, user_id: ActingUser, broker: Broker
) -> RespondChallengeResponse:
    challenge = broker.respond(body.challenge_id, user_id, body.decision)
    return RespondChallengeResponse(
        challenge_id=challenge.id,
        status=challenge.status,
        session_id=challenge.session_id,
    )


@challenges_router.delete("/{challenge_id}")
def cancel_challenge(
    challenge_id: UUID, user_id: ActingUser, broker: Broker
) -> dict[str, str]:
    broker.cancel(challenge_id, user_id)
    return {"message": "Challenge cancelled"}


@challenges_router.get("/received", response_model=list[ChallengeSummary])
def received_challenges(
    user_id: ActingUser, broker: Broker, players: Players
) -> list[ChallengeSummary]:
    return [
        _summarize(challenge, challenge.challenger_id, players)
        for challenge in broker.received(user_id)
    ]


@challenges_router.get("/sent", response_model=list[ChallengeSummary])
def sent_challenges(
    user_id: ActingUser, broker: Broker, players: Players
) -> list[ChallengeSummary]:
    return [
        _summarize(challenge, challenge.challenged_id, players)
        for challenge in broker.sent(user_id)
    ]


# --- SESSIONS ---
@sessions_router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: UUID, user_id: ActingUser, sync: Sync) -> SessionResponse:
    return SessionResponse.from_view(sync.get(session_id, user_id))


@sessions_router.get("/{session_id}/poll", response_model=PollResponse)
def poll_session(
    session_id: UUID,
    user_id: ActingUser,
    sync: Sync,
    last_version: Annotated[int, Query(ge=-1)] = -1,
) -> PollResponse:
    return PollResponse.from_result(sync.poll(session_id, user_id, last_version))


@sessions_router.patch("/{session_id}/move", response_model=MoveResponse)
def make_move(
    session_id: UUID, body: MoveRequest, user_id: ActingUser, processor: Processor
) -> MoveResponse:
    outcome = processor.submit_move(session_id, user_id, body.move)
    return MoveResponse(
        version=outcome.version,
        turn=outcome.turn,
        status=outcome.session.status,
        result=outcome.session.result,
        reason=outcome.session.reason,
    )


@sessions_router.patch("/{session_id}/end", response_model=SessionEndResponse)
def end_session(
    session_id: UUID, body: EndSessionRequest, user_id: ActingUser, arbiter: Arbiter
) -> SessionEndResponse:
    if body.reason == TerminationReason.RESIGNATION:
        session = arbiter.resign(session_id, user_id, body.result)
    else:
        session = arbiter.agree_draw(session_id, user_id)
    return _ended(session)


@sessions_router.patch("/{session_id}/flag", response_model=SessionEndResponse)
def claim_timeout(
    session_id: UUID, user_id: ActingUser, arbiter: Arbiter
) -> SessionEndResponse:
    return _ended(arbiter.claim_timeout(session_id, user_id))


# -- Internal helpers --
def _summarize(
    challenge: ChallengeModel, opponent_id: UUID, players: SQLPlayerDirectory
) -> ChallengeSummary:
    opponent = players.get_profile(opponent_id) or PlayerProfile(id=opponent_id)
    return ChallengeSummary.from_model(challenge, opponent)


def _ended(session: GameSessionModel) -> SessionEndResponse:
    return SessionEndResponse(
        session_id=session.id,
        status=session.status,
        result=session.result,
        reason=session.reason,
    )
