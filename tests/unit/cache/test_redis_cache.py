"""Tests for bounded Redis cache operations."""

from __future__ import annotations

import pytest

from cinerate.cache import CacheConnectionManager, CacheOperationError, ConnectionState, RedisCache
from tests.fakes import FakeClock, FakeRedis


@pytest.fixture
def cache(connection: CacheConnectionManager) -> RedisCache:
    return RedisCache(connection, operation_timeout=0.1)


class TestRedisCache:
    """Test RedisCache against the Redis double."""

    @pytest.mark.asyncio
    async def test_set_then_get(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """Stored bytes come back unchanged with the TTL applied."""
        await connection.connect()
        await cache.set("ns:reviews:movie:1", b'[{"id":"a"}]', 900)

        assert await cache.get("ns:reviews:movie:1") == b'[{"id":"a"}]'
        assert fake_redis.ttl("ns:reviews:movie:1") == 900

    @pytest.mark.asyncio
    async def test_get_missing_key(
        self, connection: CacheConnectionManager, cache: RedisCache
    ) -> None:
        """Absent key reads as None."""
        await connection.connect()
        assert await cache.get("ns:reviews:movie:missing") is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(
        self, connection: CacheConnectionManager, cache: RedisCache, clock: FakeClock
    ) -> None:
        """Entry is gone once its TTL has elapsed."""
        await connection.connect()
        await cache.set("k", b"v", 900)

        clock.advance(899)
        assert await cache.get("k") == b"v"
        clock.advance(1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_operation_when_not_live(self, cache: RedisCache, fake_redis: FakeRedis) -> None:
        """Commands are refused without touching Redis while not connected."""
        with pytest.raises(CacheOperationError) as exc_info:
            await cache.get("k")

        assert exc_info.value.operation == "get"
        assert fake_redis.calls == []

    @pytest.mark.asyncio
    async def test_connection_error_marks_disconnected(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """A refused command surfaces as an operation error and drops the connection."""
        await connection.connect()
        fake_redis.down = True

        with pytest.raises(CacheOperationError) as exc_info:
            await cache.set("k", b"v", 900)

        assert exc_info.value.operation == "set"
        assert connection.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_timeout(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """A slow command is abandoned after the operation timeout."""
        await connection.connect()
        fake_redis.delay = 0.5

        with pytest.raises(CacheOperationError, match="timed out"):
            await cache.get("k")

    @pytest.mark.asyncio
    async def test_delete_many(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """Existing keys are deleted in one pipeline; absent keys count zero."""
        await connection.connect()
        await cache.set("a", b"1", 900)
        await cache.set("b", b"2", 900)
        fake_redis.calls.clear()

        deleted, failed = await cache.delete_many({"a", "b", "c"})

        assert deleted == 2
        assert failed == []
        assert fake_redis.calls == ["pipeline"]
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_delete_many_partial_failure(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """One failing DEL does not stop the others."""
        await connection.connect()
        await cache.set("a", b"1", 900)
        await cache.set("b", b"2", 900)
        fake_redis.failing_keys = {"a"}

        deleted, failed = await cache.delete_many(["a", "b"])

        assert deleted == 1
        assert failed == ["a"]
        assert "a" in fake_redis.data
        assert "b" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_delete_many_empty(
        self, connection: CacheConnectionManager, cache: RedisCache, fake_redis: FakeRedis
    ) -> None:
        """No keys means no round trip."""
        await connection.connect()
        fake_redis.calls.clear()

        assert await cache.delete_many([]) == (0, [])
        assert fake_redis.calls == []
