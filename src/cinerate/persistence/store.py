"""Review store backends.

Two backends implement ``ReviewStore``:
- SqlReviewStore: SQLAlchemy asyncio (PostgreSQL/asyncpg in production)
- InMemoryReviewStore: process-local list, for tests and local runs

Select one with REVIEW_STORE_BACKEND ("sql" or "memory").
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError

from cinerate.persistence.db import create_engine, create_session_factory, init_db, session_context
from cinerate.persistence.models import Review, ReviewCreate
from cinerate.persistence.tables import ReviewTable

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from cinerate.config import Settings

logger = logging.getLogger(__name__)


class ReviewStoreError(Exception):
    """The review store could not complete an operation."""


class ReviewStore(Protocol):
    """Persistence operations the API needs."""

    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def find_by_content_and_type(self, media_type: str, content_id: str) -> list[Review]: ...

    async def insert(self, review: ReviewCreate) -> Review: ...

    async def delete_one(self, content_id: str, user_id: str) -> bool: ...

    async def health_check(self) -> bool: ...


def _to_model(row: ReviewTable) -> Review:
    return Review(
        id=row.id,
        user_id=row.user_id,
        content_id=row.content_id,
        media_type=row.media_type,
        username=row.username,
        review=row.review,
        spoiler_contains=row.spoiler_contains,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlReviewStore:
    """Reviews in a SQL database via SQLAlchemy asyncio."""

    def __init__(self, engine: AsyncEngine, create_tables: bool = True):
        self.engine = engine
        self.create_tables = create_tables
        self._session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> SqlReviewStore:
        return cls(create_engine(settings))

    async def start(self) -> None:
        """Create tables if they don't exist.

        For production, manage the schema with migrations instead.
        """
        if self.create_tables:
            await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def find_by_content_and_type(self, media_type: str, content_id: str) -> list[Review]:
        stmt = (
            select(ReviewTable)
            .where(ReviewTable.content_id == content_id, ReviewTable.media_type == media_type)
            .order_by(ReviewTable.created_at)
        )
        try:
            async with session_context(self._session_factory) as session:
                result = await session.execute(stmt)
                return [_to_model(row) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise ReviewStoreError(f"Failed to fetch reviews: {e}") from e

    async def insert(self, review: ReviewCreate) -> Review:
        row = ReviewTable(
            user_id=review.user_id,
            content_id=review.content_id,
            media_type=review.media_type,
            username=review.username,
            review=review.review,
            spoiler_contains=review.spoiler_contains,
        )
        try:
            async with session_context(self._session_factory) as session:
                session.add(row)
                await session.flush()
                return _to_model(row)
        except SQLAlchemyError as e:
            raise ReviewStoreError(f"Failed to add review: {e}") from e

    async def delete_one(self, content_id: str, user_id: str) -> bool:
        """Delete the oldest review by ``user_id`` for ``content_id``.

        Returns:
            True if a review was deleted, False if none matched.
        """
        oldest = (
            select(ReviewTable.id)
            .where(ReviewTable.content_id == content_id, ReviewTable.user_id == user_id)
            .order_by(ReviewTable.created_at)
            .limit(1)
        )
        try:
            async with session_context(self._session_factory) as session:
                review_id = (await session.execute(oldest)).scalar_one_or_none()
                if review_id is None:
                    return False
                await session.execute(delete(ReviewTable).where(ReviewTable.id == review_id))
                return True
        except SQLAlchemyError as e:
            raise ReviewStoreError(f"Failed to delete review: {e}") from e

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with session_context(self._session_factory) as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False


class InMemoryReviewStore:
    """Reviews in a process-local list, oldest first."""

    def __init__(self) -> None:
        self._reviews: list[Review] = []
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def find_by_content_and_type(self, media_type: str, content_id: str) -> list[Review]:
        return [
            review
            for review in self._reviews
            if review.content_id == content_id and review.media_type == media_type
        ]

    async def insert(self, review: ReviewCreate) -> Review:
        now = datetime.now(UTC)
        stored = Review(
            id=str(uuid4()),
            created_at=now,
            updated_at=now,
            **review.model_dump(),
        )
        async with self._lock:
            self._reviews.append(stored)
        return stored

    async def delete_one(self, content_id: str, user_id: str) -> bool:
        async with self._lock:
            for index, review in enumerate(self._reviews):
                if review.content_id == content_id and review.user_id == user_id:
                    del self._reviews[index]
                    return True
        return False

    async def health_check(self) -> bool:
        return True


def create_review_store(settings: Settings) -> ReviewStore:
    """Create a review store based on configuration."""
    backend = settings.review_store_backend.lower()

    if backend in {"memory", "inmemory", "in_memory"}:
        return InMemoryReviewStore()

    if backend in {"sql", "postgres", "postgresql"}:
        return SqlReviewStore.from_settings(settings)

    raise ValueError("Unsupported review_store_backend. Supported values: memory, sql.")
