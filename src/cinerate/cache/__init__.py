"""Review cache layer.

Provides Redis caching with the cache-aside pattern:
- Review lists cached per (media type, content id) with a TTL
- Write-triggered invalidation by exact key enumeration
- Managed connection with background reconnection
- Cache failures degrade to a miss or a no-op, never to a request error
"""

from cinerate.cache.connection import CacheConnectionManager, ConnectionState
from cinerate.cache.errors import (
    CacheConnectionError,
    CacheError,
    CacheOperationError,
    InvalidationError,
)
from cinerate.cache.health import CacheStatus, HealthReporter
from cinerate.cache.invalidation import (
    InvalidationResult,
    InvalidationScope,
    InvalidationService,
)
from cinerate.cache.keys import CacheKeys
from cinerate.cache.redis import RedisCache

__all__ = [
    # Connection
    "CacheConnectionManager",
    "ConnectionState",
    # Core cache
    "CacheKeys",
    "RedisCache",
    # Invalidation
    "InvalidationResult",
    "InvalidationScope",
    "InvalidationService",
    # Health
    "CacheStatus",
    "HealthReporter",
    # Errors
    "CacheError",
    "CacheConnectionError",
    "CacheOperationError",
    "InvalidationError",
]
