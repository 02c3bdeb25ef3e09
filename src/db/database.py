"""Generate database engine and sessions"""

from typing import Generator

from fastapi import Request
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.db.schema import Base


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine and make sure all tables exist."""
    options: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        # An in-memory database only lives as long as its single connection
        if ":memory:" in database_url or database_url == "sqlite://":
            options["poolclass"] = StaticPool
    engine = create_engine(database_url, **options)
    Base.metadata.create_all(bind=engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency: one database session per request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
