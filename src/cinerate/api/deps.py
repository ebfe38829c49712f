"""Shared FastAPI dependencies for review routers.

The application objects are built once in ``create_app`` and stored on
``app.state``; these dependencies hand them to request handlers.
"""

from __future__ import annotations

from fastapi import Request

from cinerate.cache import HealthReporter, InvalidationService
from cinerate.persistence import ReviewStore


def get_review_store(request: Request) -> ReviewStore:
    """FastAPI dependency for the review store."""
    return request.app.state.review_store  # type: ignore[no-any-return]


def get_invalidation_service(request: Request) -> InvalidationService:
    """FastAPI dependency for write-triggered cache invalidation."""
    return request.app.state.invalidation  # type: ignore[no-any-return]


def get_health_reporter(request: Request) -> HealthReporter:
    """FastAPI dependency for the cache health reporter."""
    return request.app.state.health_reporter  # type: ignore[no-any-return]
