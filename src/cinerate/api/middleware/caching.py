"""Cache-aside middleware for review reads.

For GET /{media_type}/{content_id}:
- cache live and key present: return the stored body without calling the handler
- otherwise: run the handler, store a 2xx body with a TTL, return the handler's response

The X-Cache response header reports HIT, MISS or BYPASS (cache not live).
Cache failures are logged and treated as a miss; they never fail the request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cinerate.api.routing import match_cached_read
from cinerate.cache.errors import CacheOperationError
from cinerate.cache.keys import CacheKeys
from cinerate.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from starlette.types import ASGIApp

    from cinerate.cache.connection import CacheConnectionManager
    from cinerate.cache.redis import RedisCache

logger = logging.getLogger(__name__)

CACHE_HEADER = "X-Cache"

# 15 minutes
DEFAULT_TTL = 900


class CacheAsideMiddleware(BaseHTTPMiddleware):
    """Serve review reads from Redis, populating it on miss.

    Args:
        connection: Connection manager consulted before any cache I/O
        cache: Bounded Redis operations
        namespace: Key prefix for this service
        media_types: Media types with a cacheable read route
        ttl_seconds: Default entry lifetime
        ttl_overrides: Per media type lifetime, e.g. {"tv": 300}
    """

    def __init__(
        self,
        app: ASGIApp,
        connection: CacheConnectionManager,
        cache: RedisCache,
        namespace: str,
        media_types: Iterable[str],
        ttl_seconds: int = DEFAULT_TTL,
        ttl_overrides: Mapping[str, int] | None = None,
    ):
        super().__init__(app)
        self.connection = connection
        self.cache = cache
        self.namespace = namespace
        self.media_types = frozenset(media_types)
        self.ttl_seconds = ttl_seconds
        self.ttl_overrides = dict(ttl_overrides or {})

    def ttl_for(self, media_type: str) -> int:
        return self.ttl_overrides.get(media_type, self.ttl_seconds)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Cache-aside around the review read handler."""
        # scope["path"] is already percent-decoded; request.url.path re-parses it and
        # would cut an id at an encoded "?" or "#"
        match = match_cached_read(request.method, request.scope["path"], self.media_types)
        if match is None:
            return await call_next(request)

        if not self.connection.is_live():
            response = await call_next(request)
            response.headers[CACHE_HEADER] = "BYPASS"
            return response

        media_type, content_id = match
        key = CacheKeys.read_key(self.namespace, media_type, content_id)

        cached = await self._lookup(key)
        if cached is not None:
            record_cache_hit()
            return Response(
                content=cached,
                status_code=200,
                media_type="application/json",
                headers={CACHE_HEADER: "HIT"},
            )

        record_cache_miss()
        response = await call_next(request)

        # Buffer the body so it can be both cached and returned
        chunks = [chunk async for chunk in response.body_iterator]  # type: ignore[attr-defined]
        body = b"".join(chunks)

        if 200 <= response.status_code < 300:
            await self._store(key, body, self.ttl_for(media_type))

        # Headers passed as-is so repeated ones (set-cookie) survive
        fresh = Response(
            content=body,
            status_code=response.status_code,
            headers=response.headers,
            background=response.background,
        )
        fresh.headers[CACHE_HEADER] = "MISS"
        return fresh

    async def _lookup(self, key: str) -> bytes | None:
        try:
            return await self.cache.get(key)
        except CacheOperationError as e:
            logger.warning(
                f"Cache lookup failed, serving from store: {e}", extra={"cache_key": key}
            )
            return None

    async def _store(self, key: str, body: bytes, ttl: int) -> None:
        try:
            await self.cache.set(key, body, ttl)
        except CacheOperationError as e:
            logger.warning(
                f"Cache write failed, response not cached: {e}", extra={"cache_key": key}
            )
