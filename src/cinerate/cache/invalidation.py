"""Write-triggered cache invalidation.

After a review is added or deleted, the cached review lists for the affected
content (and any user-scoped views) are deleted. Invalidation is best effort:
it never raises into the write path, and whatever it fails to delete still
expires with its TTL.

Example:
    invalidation = InvalidationService(connection, cache, "review-service", ("movie", "tv"))

    # after the write has been committed
    for result in await invalidation.invalidate_review("tt0111161", "u1"):
        if not result.ok:
            logger.warning("Invalidation incomplete", extra=result.to_dict())
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from cinerate.cache.errors import CacheOperationError, InvalidationError
from cinerate.cache.keys import CacheKeys
from cinerate.observability.metrics import record_invalidated_keys

if TYPE_CHECKING:
    from cinerate.cache.connection import CacheConnectionManager
    from cinerate.cache.redis import RedisCache

logger = logging.getLogger(__name__)


class InvalidationScope(str, Enum):
    """What a write invalidates."""

    CONTENT = "content"
    USER = "user"


@dataclass
class InvalidationResult:
    """Outcome of one invalidation call."""

    scope: InvalidationScope
    identifier: str
    requested: int = 0
    deleted: int = 0
    failed: list[str] = field(default_factory=list)
    skipped: bool = False  # cache not live, staleness bounded by TTL
    error: InvalidationError | None = None

    @property
    def ok(self) -> bool:
        """True when every requested DEL was issued successfully."""
        return self.error is None and not self.failed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "invalidation_scope": self.scope.value,
            "invalidation_identifier": self.identifier,
            "invalidation_requested": self.requested,
            "invalidation_deleted": self.deleted,
            "invalidation_failed": list(self.failed),
            "invalidation_skipped": self.skipped,
            "invalidation_error": str(self.error) if self.error else None,
        }


class InvalidationService:
    """Deletes the cache entries made stale by a review write.

    Keys come from ``CacheKeys`` enumeration, never from a keyspace scan.
    Must be called after the write is committed, never before.
    """

    def __init__(
        self,
        connection: CacheConnectionManager,
        cache: RedisCache,
        namespace: str,
        media_types: Iterable[str],
    ):
        self.connection = connection
        self.cache = cache
        self.namespace = namespace
        self.media_types = tuple(media_types)

    async def invalidate_content(self, content_id: str) -> InvalidationResult:
        """Invalidate every cached review list for a content id."""
        keys = CacheKeys.content_invalidation_keys(self.namespace, content_id, self.media_types)
        return await self._invalidate(InvalidationScope.CONTENT, content_id, keys)

    async def invalidate_user(self, user_id: str) -> InvalidationResult:
        """Invalidate cached views scoped to a user (currently none)."""
        keys = CacheKeys.user_invalidation_keys(self.namespace, user_id)
        return await self._invalidate(InvalidationScope.USER, user_id, keys)

    async def invalidate_review(
        self, content_id: str, user_id: str | None = None
    ) -> list[InvalidationResult]:
        """Invalidate everything a review add/delete affects."""
        results = [await self.invalidate_content(content_id)]
        if user_id:
            results.append(await self.invalidate_user(user_id))
        return results

    async def _invalidate(
        self, scope: InvalidationScope, identifier: str, keys: frozenset[str]
    ) -> InvalidationResult:
        result = InvalidationResult(scope=scope, identifier=identifier, requested=len(keys))

        if not self.connection.is_live():
            result.skipped = True
            logger.debug(f"Cache not live, skipping {scope.value} invalidation for {identifier}")
            return result

        if not keys:
            return result

        try:
            result.deleted, result.failed = await self.cache.delete_many(keys)
        except CacheOperationError as e:
            result.error = InvalidationError(f"{scope.value} {identifier}: {e}")
            result.failed = sorted(keys)
            logger.warning(f"Cache invalidation failed: {result.error}", extra=result.to_dict())
            return result

        record_invalidated_keys(scope.value, result.deleted)
        if result.failed:
            logger.warning(
                f"Cache invalidation partially failed for {scope.value} {identifier}",
                extra=result.to_dict(),
            )
        else:
            logger.debug(
                f"Invalidated {result.deleted} cache entries for {scope.value} {identifier}"
            )
        return result
