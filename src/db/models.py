"""SQLAlchemy declarative base for all ORM models."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class UserSessionModel(Base):
    """ORM model for one user's conversation state."""

    __tablename__ = "user_sessions"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    variables: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    input_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    reply_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    last_reply: Mapped[str] = mapped_column(Text, nullable=False, default="undefined")
    last_match: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
