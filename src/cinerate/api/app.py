"""FastAPI application factory for the review service.

Creates the application with:
- Review endpoints (/{media_type}/{content_id}, /add, /delete)
- Cache-aside middleware on review reads, invalidation on writes
- Health (/test, /health, /health/live, /health/ready) and /metrics
- Lifecycle management for the review store and the cache connection

The cache connection, cache operations, invalidation service, health reporter
and review store are built here and passed explicitly to the middleware
(constructor arguments) and routers (``app.state``).
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from starlette.types import ExceptionHandler

from cinerate.api.errors import (
    ReviewApiError,
    generic_exception_handler,
    review_api_exception_handler,
)
from cinerate.api.middleware import CacheAsideMiddleware, CorrelationMiddleware
from cinerate.api.routers import health, reviews
from cinerate.api.routers import metrics as metrics_router
from cinerate.cache import (
    CacheConnectionManager,
    HealthReporter,
    InvalidationService,
    RedisCache,
)
from cinerate.config import Settings, settings
from cinerate.observability import configure_logging
from cinerate.observability.metrics import MetricsMiddleware, get_metrics
from cinerate.persistence import ReviewStore, create_review_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Start the review store
    - Connect to Redis (a failed attempt is retried in the background)

    On shutdown:
    - Close the cache connection (bounded by the shutdown timeout)
    - Close the review store
    """
    app_settings: Settings = app.state.settings
    connection: CacheConnectionManager = app.state.cache_connection
    store: ReviewStore = app.state.review_store

    configure_logging(
        json_format=app_settings.env != "dev",
        level=app_settings.log_level,
    )
    get_metrics()

    logger.info(f"Starting review service ({app_settings.env})")
    await store.start()
    if app_settings.cache_enabled:
        await connection.start()
    logger.info("Review service startup complete")

    yield

    logger.info("Shutting down review service")
    try:
        await asyncio.wait_for(connection.close(), timeout=app_settings.shutdown_timeout)
    except asyncio.TimeoutError:
        logger.warning("Timed out closing the cache connection")
    await store.close()
    logger.info("Review service shutdown complete")


def create_app(
    app_settings: Settings | None = None,
    *,
    review_store: ReviewStore | None = None,
    cache_connection: CacheConnectionManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the environment settings)
        review_store: Review store (defaults to REVIEW_STORE_BACKEND)
        cache_connection: Cache connection manager (defaults to REDIS_URL)
    """
    app_settings = app_settings or settings
    review_store = review_store or create_review_store(app_settings)
    cache_connection = cache_connection or CacheConnectionManager.from_settings(app_settings)

    redis_cache = RedisCache(
        cache_connection, operation_timeout=app_settings.cache_operation_timeout
    )
    invalidation = InvalidationService(
        cache_connection,
        redis_cache,
        namespace=app_settings.cache_prefix,
        media_types=app_settings.media_types,
    )

    app = FastAPI(
        title="CineRate Review Service",
        description="User reviews for movies and TV shows, with a Redis read cache",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.review_store = review_store
    app.state.cache_connection = cache_connection
    app.state.invalidation = invalidation
    app.state.health_reporter = HealthReporter(cache_connection)

    # Order: Metrics (outer) -> Correlation -> CacheAside (inner)
    app.add_middleware(
        CacheAsideMiddleware,
        connection=cache_connection,
        cache=redis_cache,
        namespace=app_settings.cache_prefix,
        media_types=app_settings.media_types,
        ttl_seconds=app_settings.cache_ttl,
        ttl_overrides=app_settings.ttl_overrides,
    )
    app.add_middleware(CorrelationMiddleware)
    if app_settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(
        ReviewApiError, cast(ExceptionHandler, review_api_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    # Fixed paths first; the review read route matches any two segments
    app.include_router(health.router)
    if app_settings.enable_metrics:
        app.include_router(metrics_router.router)
    app.include_router(reviews.router)

    return app
