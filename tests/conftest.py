"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from cinerate.api.app import create_app
from cinerate.cache import CacheConnectionManager
from cinerate.config import Settings
from tests.fakes import CountingReviewStore, FakeClock, FakeRedis


@pytest.fixture
def clock() -> FakeClock:
    """Clock driving cache expiry."""
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    """In-memory Redis double."""
    return FakeRedis(clock)


@pytest.fixture
def connection(fake_redis: FakeRedis) -> CacheConnectionManager:
    """Unstarted connection manager talking to the Redis double.

    Reconnection and health checks are slow enough not to interfere with a
    test unless it waits for them.
    """
    return CacheConnectionManager(
        "redis://cache.test:6379/0",
        retry_delay=60.0,
        connect_timeout=0.5,
        health_check_interval=60.0,
        client_factory=lambda: fake_redis,
    )


@pytest.fixture
def review_store() -> CountingReviewStore:
    """In-memory review store that counts reads."""
    return CountingReviewStore()


@pytest.fixture
def app_settings() -> Settings:
    """Settings for an in-process app with the memory store."""
    return Settings(
        env="dev",
        review_store_backend="memory",
        cache_prefix="review-service",
        cache_ttl=900,
        cache_media_types="movie,tv",
        cache_operation_timeout=0.5,
        log_level="WARNING",
    )


@pytest.fixture
def client(
    app_settings: Settings,
    review_store: CountingReviewStore,
    connection: CacheConnectionManager,
) -> Iterator[TestClient]:
    """Test client with the lifespan running (cache connected on startup)."""
    app = create_app(app_settings, review_store=review_store, cache_connection=connection)
    with TestClient(app) as test_client:
        yield test_client
