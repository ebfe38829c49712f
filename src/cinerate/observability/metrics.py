"""Prometheus metrics for the review service.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count, in progress)
- Review cache metrics (hits, misses, errors, hit ratio, latency)
- Invalidation and connection state metrics

Usage:
    from cinerate.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.http_requests_total.labels(method="GET", path="/movie/{id}", status=200).inc()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cinerate.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Numeric encoding of ConnectionState for the gauge
CONNECTION_STATE_VALUES = {
    "disconnected": 0,
    "connecting": 1,
    "connected": 2,
    "failed": 3,
}


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None
    http_requests_in_progress: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_errors_total: Any = None
    cache_hit_ratio: Any = None
    cache_operation_duration_seconds: Any = None
    cache_invalidated_keys_total: Any = None
    cache_connection_state: Any = None

    # Running totals behind the hit ratio gauge
    hits: int = 0
    misses: int = 0

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        from prometheus_client import REGISTRY, Counter, Gauge, Histogram

        self._registry = REGISTRY

        # HTTP metrics
        self.http_requests_total = Counter(
            "review_service_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "review_service_response_time",
            "Response time of review service operations in seconds",
            ["method", "path"],
            buckets=(0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10),
        )

        self.http_requests_in_progress = Gauge(
            "review_service_http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method"],
        )

        # Cache metrics
        self.cache_hits_total = Counter(
            "review_service_cache_hits_total",
            "Review cache hits",
        )

        self.cache_misses_total = Counter(
            "review_service_cache_misses_total",
            "Review cache misses",
        )

        self.cache_errors_total = Counter(
            "review_service_cache_errors_total",
            "Failed review cache operations",
            ["operation"],
        )

        self.cache_hit_ratio = Gauge(
            "review_service_cache_hit_ratio",
            "Cache hit ratio for the Review Service",
        )

        self.cache_operation_duration_seconds = Histogram(
            "review_service_cache_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5),
        )

        self.cache_invalidated_keys_total = Counter(
            "review_service_cache_invalidated_keys_total",
            "Cache keys deleted by write-triggered invalidation",
            ["scope"],
        )

        self.cache_connection_state = Gauge(
            "review_service_cache_connection_state",
            "Cache connection state (0=disconnected, 1=connecting, 2=connected, 3=failed)",
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics or self._registry is None:
            return b"# Metrics disabled\n"

        from prometheus_client import generate_latest

        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics.

    Records:
    - Request count by method, path, status
    - Request duration histogram
    - Requests in progress gauge
    """

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        # Skip metrics for health and metrics endpoints
        if request.url.path.startswith("/health") or request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = normalize_path(request.url.path)

        if self.metrics.http_requests_in_progress:
            self.metrics.http_requests_in_progress.labels(method=method).inc()

        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)

            if self.metrics.http_requests_in_progress:
                self.metrics.http_requests_in_progress.labels(method=method).dec()


def normalize_path(path: str) -> str:
    """Normalize path by replacing content IDs with placeholders.

    This prevents high cardinality in metrics.

    Examples:
        /movie/tt0111161 -> /movie/{id}
        /add -> /add
    """
    parts = path.strip("/").split("/")
    if len(parts) == 2 and parts[0] not in ("health", "docs", "redoc"):
        return f"/{parts[0]}/{{id}}"
    return path


def record_cache_hit() -> None:
    """Record cache hit."""
    metrics = get_metrics()
    metrics.hits += 1
    if metrics.cache_hits_total:
        metrics.cache_hits_total.inc()
    _update_hit_ratio(metrics)


def record_cache_miss() -> None:
    """Record cache miss."""
    metrics = get_metrics()
    metrics.misses += 1
    if metrics.cache_misses_total:
        metrics.cache_misses_total.inc()
    _update_hit_ratio(metrics)


def _update_hit_ratio(metrics: MetricsRegistry) -> None:
    total = metrics.hits + metrics.misses
    if metrics.cache_hit_ratio and total:
        metrics.cache_hit_ratio.set(metrics.hits / total)


def record_cache_error(operation: str) -> None:
    """Record a failed cache operation (get, set, delete, connect)."""
    metrics = get_metrics()
    if metrics.cache_errors_total:
        metrics.cache_errors_total.labels(operation=operation).inc()


def record_cache_operation(operation: str, duration: float) -> None:
    """Record cache operation duration.

    Args:
        operation: Cache operation (get, set, delete)
        duration: Operation duration in seconds
    """
    metrics = get_metrics()
    if metrics.cache_operation_duration_seconds:
        metrics.cache_operation_duration_seconds.labels(operation=operation).observe(duration)


def record_invalidated_keys(scope: str, count: int) -> None:
    """Record keys removed by invalidation (scope is "content" or "user")."""
    metrics = get_metrics()
    if metrics.cache_invalidated_keys_total and count:
        metrics.cache_invalidated_keys_total.labels(scope=scope).inc(count)


def set_cache_connection_state(state: str) -> None:
    """Publish the cache connection state."""
    metrics = get_metrics()
    if metrics.cache_connection_state:
        metrics.cache_connection_state.set(CONNECTION_STATE_VALUES.get(state, 0))
