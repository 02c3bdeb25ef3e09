"""Database tables / schema"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.core.models import DEFAULT_RATING, utc_now


class Base(DeclarativeBase):
    type_annotation_map = {datetime: DateTime(timezone=True)}


class DBPlayer(Base):
    """Read-only projection of the club's user accounts (public profile fields only)."""

    __tablename__ = "players"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(unique=True)
    rating: Mapped[int] = mapped_column(default=DEFAULT_RATING)


class DBChallenge(Base):
    __tablename__ = "challenges"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    challenger_id: Mapped[UUID] = mapped_column(index=True)
    challenged_id: Mapped[UUID] = mapped_column(index=True)
    time_control: Mapped[int]
    status: Mapped[str] = mapped_column(index=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    responded_at: Mapped[Optional[datetime]]
    session_id: Mapped[Optional[UUID]] = mapped_column(ForeignKey("game_sessions.id"))
    # Unordered player pair while pending, NULL once resolved: at most one pending challenge per pair.
    pending_key: Mapped[Optional[str]] = mapped_column(unique=True)


class DBGameSession(Base):
    __tablename__ = "game_sessions"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    white_id: Mapped[UUID] = mapped_column(index=True)
    black_id: Mapped[UUID] = mapped_column(index=True)
    time_control: Mapped[int]
    current_fen: Mapped[str]
    history_fen: Mapped[list[str]] = mapped_column(JSON, default=list)
    moves: Mapped[list[str]] = mapped_column(JSON, default=list)
    turn: Mapped[str]
    version: Mapped[int] = mapped_column(default=0)
    white_time_left: Mapped[float]
    black_time_left: Mapped[float]
    status: Mapped[str]
    result: Mapped[Optional[str]]
    reason: Mapped[Optional[str]]
    last_move_by: Mapped[Optional[UUID]]
    last_move_at: Mapped[datetime]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    ended_at: Mapped[Optional[datetime]]
    challenge_id: Mapped[Optional[UUID]]
