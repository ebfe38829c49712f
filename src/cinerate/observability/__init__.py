"""Observability module for the review service.

Provides metrics and structured logging:
- Prometheus metrics (HTTP and review cache)
- JSON structured logging with correlation IDs
"""

from cinerate.observability.logging import (
    configure_logging,
    correlation_id_var,
    request_id_var,
)
from cinerate.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "request_id_var",
    "correlation_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]
