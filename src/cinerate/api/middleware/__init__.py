"""Middleware for the review API.

- Cache-aside for review reads
- Correlation context for request tracing
"""

from cinerate.api.middleware.caching import CacheAsideMiddleware
from cinerate.api.middleware.correlation import CorrelationMiddleware

__all__ = [
    "CacheAsideMiddleware",
    "CorrelationMiddleware",
]
