"""Tests for write-triggered cache invalidation."""

from __future__ import annotations

import pytest

from cinerate.cache import (
    CacheConnectionManager,
    CacheKeys,
    InvalidationScope,
    InvalidationService,
    RedisCache,
)
from tests.fakes import FakeRedis

NAMESPACE = "review-service"


@pytest.fixture
def service(connection: CacheConnectionManager) -> InvalidationService:
    cache = RedisCache(connection, operation_timeout=0.1)
    return InvalidationService(connection, cache, NAMESPACE, ("movie", "tv"))


def seed(fake_redis: FakeRedis, media_type: str, content_id: str) -> str:
    key = CacheKeys.read_key(NAMESPACE, media_type, content_id)
    fake_redis.data[key] = (b"[]", None)
    return key


class TestInvalidationService:
    """Test InvalidationService."""

    @pytest.mark.asyncio
    async def test_invalidate_content(
        self,
        connection: CacheConnectionManager,
        service: InvalidationService,
        fake_redis: FakeRedis,
    ) -> None:
        """Every media type's entry for the content goes; other content stays."""
        await connection.connect()
        seed(fake_redis, "movie", "1")
        seed(fake_redis, "tv", "1")
        other = seed(fake_redis, "movie", "2")

        result = await service.invalidate_content("1")

        assert result.ok
        assert result.scope == InvalidationScope.CONTENT
        assert result.requested == 2
        assert result.deleted == 2
        assert list(fake_redis.data) == [other]

    @pytest.mark.asyncio
    async def test_invalidate_without_entries(
        self, connection: CacheConnectionManager, service: InvalidationService
    ) -> None:
        """Invalidating content with nothing cached succeeds and deletes nothing."""
        await connection.connect()

        result = await service.invalidate_content("nothing-cached")

        assert result.ok
        assert result.deleted == 0
        assert result.skipped is False

    @pytest.mark.asyncio
    async def test_skipped_when_not_live(
        self, service: InvalidationService, fake_redis: FakeRedis
    ) -> None:
        """Without a live connection no command is issued and nothing raises."""
        result = await service.invalidate_content("1")

        assert result.skipped is True
        assert result.ok
        assert fake_redis.calls == []

    @pytest.mark.asyncio
    async def test_invalidate_user_has_no_keys(
        self,
        connection: CacheConnectionManager,
        service: InvalidationService,
        fake_redis: FakeRedis,
    ) -> None:
        """User invalidation is a no-op while no user views are cached."""
        await connection.connect()
        fake_redis.calls.clear()

        result = await service.invalidate_user("u1")

        assert result.ok
        assert result.scope == InvalidationScope.USER
        assert result.requested == 0
        assert fake_redis.calls == []

    @pytest.mark.asyncio
    async def test_invalidate_review(
        self, connection: CacheConnectionManager, service: InvalidationService
    ) -> None:
        """A review write invalidates its content and its author."""
        await connection.connect()

        results = await service.invalidate_review("1", "u1")

        assert [r.scope for r in results] == [InvalidationScope.CONTENT, InvalidationScope.USER]
        assert [r.identifier for r in results] == ["1", "u1"]

    @pytest.mark.asyncio
    async def test_invalidate_review_without_user(
        self, connection: CacheConnectionManager, service: InvalidationService
    ) -> None:
        """Without a user id only the content is invalidated."""
        await connection.connect()

        results = await service.invalidate_review("1")

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_partial_failure_reported(
        self,
        connection: CacheConnectionManager,
        service: InvalidationService,
        fake_redis: FakeRedis,
    ) -> None:
        """Keys that could not be deleted are listed on the result."""
        await connection.connect()
        movie_key = seed(fake_redis, "movie", "1")
        seed(fake_redis, "tv", "1")
        fake_redis.failing_keys = {movie_key}

        result = await service.invalidate_content("1")

        assert result.ok is False
        assert result.deleted == 1
        assert result.failed == [movie_key]
        assert result.error is None

    @pytest.mark.asyncio
    async def test_cache_failure_does_not_raise(
        self,
        connection: CacheConnectionManager,
        service: InvalidationService,
        fake_redis: FakeRedis,
    ) -> None:
        """A cache outage mid-invalidation becomes an error on the result."""
        await connection.connect()
        fake_redis.down = True

        result = await service.invalidate_content("1")

        assert result.ok is False
        assert result.error is not None
        assert len(result.failed) == 2
        assert connection.is_live() is False

    def test_result_to_dict(self) -> None:
        """Result serializes for structured logging."""
        from cinerate.cache import InvalidationResult

        result = InvalidationResult(
            scope=InvalidationScope.CONTENT, identifier="1", requested=2, deleted=2
        )
        data = result.to_dict()

        assert data["invalidation_scope"] == "content"
        assert data["invalidation_deleted"] == 2
        assert data["invalidation_error"] is None
