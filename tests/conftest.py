"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.models import GameSessionModel
from src.core.shared_types import Decision
from src.db.schema import Base, DBPlayer
from src.db.sql_repository import (
    SQLChallengeRepository,
    SQLPlayerDirectory,
    SQLSessionStore,
)
from src.rules.engine import PythonChessRules
from src.services.challenge_broker import ChallengeBroker
from src.services.move_processor import MoveProcessor
from src.services.sync_protocol import SyncProtocol
from src.services.termination_arbiter import TerminationArbiter

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

TIME_CONTROL = 600


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


# --- MOCK DEPENDENCIES ----
class FakeClock:
    """Stand-in for utc_now(): time only moves when a test says so."""

    def __init__(self) -> None:
        self.current = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingRecorder:
    """ResultRecorder that remembers every session it was handed."""

    def __init__(self) -> None:
        self.recorded: list[GameSessionModel] = []

    def record(self, session: GameSessionModel) -> None:
        self.recorded.append(session)


@dataclass
class Players:
    alice: UUID
    bob: UUID
    carol: UUID


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> RecordingRecorder:
    return RecordingRecorder()


@pytest.fixture
def players(db_session_repo: Session) -> Players:
    """Three registered club members."""
    registered = Players(alice=uuid4(), bob=uuid4(), carol=uuid4())
    db_session_repo.add_all(
        [
            DBPlayer(id=registered.alice, username="alice", rating=1500),
            DBPlayer(id=registered.bob, username="bob", rating=1350),
            DBPlayer(id=registered.carol, username="carol", rating=1200),
        ]
    )
    db_session_repo.commit()
    return registered


# --- SERVICES WIRED TO THE TEST DATABASE ----
@pytest.fixture
def session_store(db_session_repo: Session) -> SQLSessionStore:
    return SQLSessionStore(db_session_repo)


@pytest.fixture
def challenge_repo(db_session_repo: Session) -> SQLChallengeRepository:
    return SQLChallengeRepository(db_session_repo)


@pytest.fixture
def directory(db_session_repo: Session) -> SQLPlayerDirectory:
    return SQLPlayerDirectory(db_session_repo)


@pytest.fixture
def broker(
    challenge_repo: SQLChallengeRepository,
    directory: SQLPlayerDirectory,
    clock: FakeClock,
) -> ChallengeBroker:
    return ChallengeBroker(challenge_repo, directory, now=clock)


@pytest.fixture
def arbiter(
    session_store: SQLSessionStore, recorder: RecordingRecorder, clock: FakeClock
) -> TerminationArbiter:
    return TerminationArbiter(session_store, recorder, now=clock)


@pytest.fixture
def processor(
    session_store: SQLSessionStore, arbiter: TerminationArbiter, clock: FakeClock
) -> MoveProcessor:
    return MoveProcessor(session_store, PythonChessRules(), arbiter, now=clock)


@pytest.fixture
def sync(
    session_store: SQLSessionStore, directory: SQLPlayerDirectory, clock: FakeClock
) -> SyncProtocol:
    return SyncProtocol(session_store, directory, now=clock)


@pytest.fixture
def session_id(broker: ChallengeBroker, players: Players) -> UUID:
    """A live session created the way players create one: alice challenges bob, bob accepts. Alice plays white."""
    challenge = broker.send(players.alice, players.bob, TIME_CONTROL)
    accepted = broker.respond(challenge.id, players.bob, Decision.ACCEPT)
    assert accepted.session_id is not None
    return accepted.session_id
