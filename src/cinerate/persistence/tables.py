"""SQLAlchemy ORM models for review persistence."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReviewTable(Base):
    """User review of a movie or TV show."""

    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    media_type: Mapped[str] = mapped_column(String(32), nullable=False)

    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    spoiler_contains: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        # Read path: GET /{media_type}/{content_id}
        Index("ix_reviews_content_media", "content_id", "media_type"),
        # Delete path: POST /delete
        Index("ix_reviews_content_user", "content_id", "user_id"),
    )
