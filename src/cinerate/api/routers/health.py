"""Health check endpoints for the review service.

Provides:
- /test         - Plain-text smoke test
- /health       - Full report (review store and cache connection)
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks the review store)

The cache is optional for serving traffic: a disconnected cache makes the
service "degraded", never unhealthy.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from cinerate.api.deps import get_health_reporter, get_review_store
from cinerate.cache import HealthReporter
from cinerate.persistence import ReviewStore

router = APIRouter(tags=["health"])

# Cache readiness results briefly to prevent health check storms
READY_CACHE_TTL = 5  # seconds
STORE_CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_store(store: ReviewStore) -> ComponentHealth:
    """Check review store connectivity."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(store.health_check(), timeout=STORE_CHECK_TIMEOUT)
        message = None if healthy else "Review store check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = "Review store check timed out"

    return ComponentHealth(
        name="review_store",
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


@router.get("/test", response_class=PlainTextResponse)
async def test_endpoint() -> str:
    """Confirm the service is running."""
    return "Review service is running"


@router.get("/health")
async def full_health(
    store: ReviewStore = Depends(get_review_store),
    reporter: HealthReporter = Depends(get_health_reporter),
) -> JSONResponse:
    """Full health report for external checks.

    Returns 503 when the review store is down. A disconnected cache only
    degrades the service.
    """
    store_result = await check_store(store)
    cache_status = reporter.status()

    if store_result.status != HealthStatus.HEALTHY:
        overall_status = HealthStatus.UNHEALTHY
    elif not cache_status.live:
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    return JSONResponse(
        content={
            "status": overall_status.value,
            "checks": {
                "review_store": store_result.to_dict(),
                "cache": cache_status.to_dict(),
            },
        },
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(
    request: Request,
    store: ReviewStore = Depends(get_review_store),
) -> JSONResponse:
    """Readiness probe.

    Returns 200 while the review store answers, 503 otherwise.
    """
    now = time.monotonic()
    cached: tuple[float, dict[str, Any]] | None = getattr(request.app.state, "ready_cache", None)
    if cached is not None:
        cached_time, cached_result = cached
        if now - cached_time < READY_CACHE_TTL:
            return JSONResponse(
                content=cached_result,
                status_code=200 if cached_result["status"] == "healthy" else 503,
            )

    store_result = await check_store(store)
    result = {
        "status": store_result.status.value,
        "components": [store_result.to_dict()],
    }
    request.app.state.ready_cache = (now, result)

    status_code = 200 if store_result.status == HealthStatus.HEALTHY else 503
    return JSONResponse(content=result, status_code=status_code)
