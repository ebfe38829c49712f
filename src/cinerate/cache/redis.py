"""Redis cache operations for the review service.

Every command borrows the client from ``CacheConnectionManager`` and is bounded
by ``operation_timeout``. Failures surface as ``CacheOperationError`` so callers
can degrade to a miss or a no-op; connection-level failures are also reported
back to the manager, which schedules a reconnect.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, TypeVar, cast

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from cinerate.cache.errors import CacheConnectionError, CacheOperationError
from cinerate.observability.metrics import record_cache_error, record_cache_operation

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from cinerate.cache.connection import CacheConnectionManager

T = TypeVar("T")

# Default operation timeout (seconds)
DEFAULT_OPERATION_TIMEOUT = 2.0


class RedisCache:
    """Bounded GET/SET/DEL against the managed Redis connection."""

    def __init__(
        self,
        connection: CacheConnectionManager,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ):
        self.connection = connection
        self.operation_timeout = operation_timeout

    async def _run(self, operation: str, command: Callable[[Redis], Awaitable[T]]) -> T:
        """Run one command against the live client.

        Raises:
            CacheOperationError: If the connection is not live, the command
                failed, or it did not finish within the operation timeout.
        """
        try:
            client = self.connection.client
        except CacheConnectionError as e:
            raise CacheOperationError(operation, str(e)) from e

        start = time.perf_counter()
        try:
            return await asyncio.wait_for(command(client), timeout=self.operation_timeout)
        except asyncio.TimeoutError as e:
            record_cache_error(operation)
            raise CacheOperationError(
                operation, f"timed out after {self.operation_timeout}s"
            ) from e
        except (RedisConnectionError, OSError) as e:
            record_cache_error(operation)
            await self.connection.mark_disconnected(f"{operation} failed: {e}")
            raise CacheOperationError(operation, str(e)) from e
        except RedisError as e:
            record_cache_error(operation)
            raise CacheOperationError(operation, str(e)) from e
        finally:
            record_cache_operation(operation, time.perf_counter() - start)

    async def get(self, key: str) -> bytes | None:
        """Get cached bytes, or None if absent or expired."""
        return cast(bytes | None, await self._run("get", lambda client: client.get(key)))

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store bytes with an expiry of ``ttl`` seconds (atomic SET ... EX)."""
        await self._run("set", lambda client: client.set(key, value, ex=ttl))

    async def delete_many(self, keys: Iterable[str]) -> tuple[int, list[str]]:
        """Delete keys in one round trip.

        Each key is its own DEL in a non-transactional pipeline, so one
        failing command does not abort the others.

        Returns:
            Tuple of (number of keys deleted, keys whose DEL failed).
        """
        ordered = sorted(keys)
        if not ordered:
            return (0, [])

        async def _delete(client: Redis) -> list[object]:
            async with client.pipeline(transaction=False) as pipe:
                for key in ordered:
                    pipe.delete(key)
                return cast(list[object], await pipe.execute(raise_on_error=False))

        results = await self._run("delete", _delete)

        deleted = 0
        failed: list[str] = []
        for key, result in zip(ordered, results):
            if isinstance(result, Exception):
                failed.append(key)
            else:
                deleted += int(cast(int, result))
        return (deleted, failed)
