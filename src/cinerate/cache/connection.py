"""Redis connection manager with reconnection logic.

Owns the one Redis client of the process. Every other component reads the
connection through ``is_live()`` / ``state`` and issues commands through
``RedisCache``, which borrows ``client`` and reports dropped connections back
with ``mark_disconnected()``.

State machine:
    disconnected -> connecting -> connected
    connected -> disconnected      (drop detected, retried)
    any -> failed                  (attempt failed, retried like disconnected)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from cinerate.cache.errors import CacheConnectionError
from cinerate.observability.metrics import record_cache_error, set_cache_connection_state

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from cinerate.config import Settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], "Redis"]

# Errors that mean "the server did not answer"
CONNECTION_ERRORS = (RedisError, OSError, asyncio.TimeoutError)

# A malformed REDIS_URL fails in from_url with ValueError
CONNECT_ERRORS = (*CONNECTION_ERRORS, ValueError)


class ConnectionState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class CacheConnectionManager:
    """Manages the Redis client lifecycle with background reconnection.

    Features:
    - One connection attempt on start, then a supervisor task that retries
      until closed (fixed delay by default, optional backoff multiplier)
    - Periodic PING while connected to detect silent drops
    - Connection state tracking with a logged event per transition
    - Idempotent shutdown
    """

    def __init__(
        self,
        url: str,
        *,
        retry_delay: float = 5.0,
        retry_multiplier: float = 1.0,
        retry_delay_max: float = 60.0,
        connect_timeout: float = 2.0,
        health_check_interval: float = 10.0,
        client_factory: ClientFactory | None = None,
    ):
        self.url = url
        self.retry_delay = retry_delay
        self.retry_multiplier = retry_multiplier
        self.retry_delay_max = retry_delay_max
        self.connect_timeout = connect_timeout
        self.health_check_interval = health_check_interval
        self._client_factory = client_factory or self._create_client
        self._client: Redis | None = None
        self._state = ConnectionState.DISCONNECTED
        self._since = datetime.now(UTC)
        self._lock = asyncio.Lock()
        self._dropped = asyncio.Event()
        self._supervisor: asyncio.Task[None] | None = None
        self._current_delay = retry_delay
        self._closed = False
        self.connection_attempts = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> CacheConnectionManager:
        """Create a manager from application settings."""
        return cls(
            settings.redis_url,
            retry_delay=settings.cache_retry_delay,
            retry_multiplier=settings.cache_retry_multiplier,
            retry_delay_max=settings.cache_retry_delay_max,
            connect_timeout=settings.cache_operation_timeout,
            health_check_interval=settings.cache_health_check_interval,
        )

    def _create_client(self) -> Redis:
        return redis.from_url(  # type: ignore[no-untyped-call]
            self.url,
            decode_responses=False,  # We're storing response bytes
            socket_timeout=self.connect_timeout,
            socket_connect_timeout=self.connect_timeout,
        )

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._state

    @property
    def since(self) -> datetime:
        """When the current state was entered."""
        return self._since

    def is_live(self) -> bool:
        """Check if cache commands may be issued."""
        return self._state == ConnectionState.CONNECTED

    @property
    def client(self) -> Redis:
        """The live Redis client.

        Raises:
            CacheConnectionError: If the connection is not live.
        """
        if self._state != ConnectionState.CONNECTED or self._client is None:
            raise CacheConnectionError(f"Cache connection is {self._state.value}")
        return self._client

    def _set_state(self, state: ConnectionState, reason: str | None = None) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        self._since = datetime.now(UTC)
        set_cache_connection_state(state.value)

        level = logging.INFO
        if state == ConnectionState.FAILED or previous == ConnectionState.CONNECTED:
            level = logging.WARNING
        logger.log(
            level,
            f"Cache connection {previous.value} -> {state.value}",
            extra={
                "cache_state": state.value,
                "cache_previous_state": previous.value,
                "cache_reason": reason,
            },
        )

    async def connect(self) -> bool:
        """Make one connection attempt.

        Returns:
            True if connected, False otherwise. A failed attempt leaves the
            manager in FAILED; the supervisor keeps retrying.
        """
        async with self._lock:
            if self._closed:
                return False
            if self._state == ConnectionState.CONNECTED:
                return True

            self._set_state(ConnectionState.CONNECTING)
            self.connection_attempts += 1

            client: Redis | None = None
            try:
                client = self._client_factory()
                await asyncio.wait_for(client.ping(), timeout=self.connect_timeout)
            except CONNECT_ERRORS as e:
                record_cache_error("connect")
                if client is not None:
                    await self._release(client)
                self._set_state(ConnectionState.FAILED, reason=_describe(e))
                return False
            except BaseException:
                # Cancelled mid-attempt (close() during a retry)
                if client is not None:
                    await self._release(client)
                raise

            self._client = client
            self._current_delay = self.retry_delay
            self._dropped.clear()
            self._set_state(ConnectionState.CONNECTED)
            return True

    async def start(self) -> None:
        """Connect once and start the background supervisor."""
        if self._closed:
            return
        await self.connect()
        if self._supervisor is None or self._supervisor.done():
            self._supervisor = asyncio.create_task(
                self._supervise(), name="cache-connection-supervisor"
            )

    async def mark_disconnected(self, reason: str) -> None:
        """Record a dropped connection reported by a cache command."""
        if self._state != ConnectionState.CONNECTED:
            return
        client, self._client = self._client, None
        self._set_state(ConnectionState.DISCONNECTED, reason=reason)
        self._dropped.set()
        if client is not None:
            await self._release(client)

    async def close(self) -> None:
        """Stop reconnecting and release the client. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True

        if self._supervisor and not self._supervisor.done():
            self._supervisor.cancel()
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass
        self._supervisor = None

        client, self._client = self._client, None
        if client is not None:
            await self._release(client)

        self._set_state(ConnectionState.DISCONNECTED, reason="closed")
        logger.info("Cache connection closed")

    async def _supervise(self) -> None:
        """Background task: retry while down, health-check while up."""
        while not self._closed:
            try:
                if self._state == ConnectionState.CONNECTED:
                    await self._watch()
                    continue

                delay = self._next_delay()
                logger.info(f"Retrying cache connection in {delay:.1f}s")
                await asyncio.sleep(delay)
                await self.connect()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cache connection supervisor: {e}")
                await asyncio.sleep(self.retry_delay)

    async def _watch(self) -> None:
        """Wait for a reported drop or ping after the health check interval."""
        try:
            await asyncio.wait_for(self._dropped.wait(), timeout=self.health_check_interval)
            return
        except asyncio.TimeoutError:
            pass

        client = self._client
        if client is None:
            return
        try:
            await asyncio.wait_for(client.ping(), timeout=self.connect_timeout)
        except CONNECTION_ERRORS as e:
            record_cache_error("ping")
            await self.mark_disconnected(f"health check failed: {_describe(e)}")

    def _next_delay(self) -> float:
        delay = self._current_delay
        self._current_delay = min(self._current_delay * self.retry_multiplier, self.retry_delay_max)
        return delay

    async def _release(self, client: Redis) -> None:
        try:
            await asyncio.wait_for(client.aclose(), timeout=self.connect_timeout)
        except CONNECTION_ERRORS as e:
            logger.warning(f"Error closing cache client: {e}")


def _describe(error: BaseException) -> str:
    # asyncio timeouts carry no message
    return str(error) or type(error).__name__
