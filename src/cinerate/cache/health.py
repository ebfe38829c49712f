"""Cache connection status for health checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from cinerate.cache.connection import ConnectionState

if TYPE_CHECKING:
    from cinerate.cache.connection import CacheConnectionManager


@dataclass(frozen=True)
class CacheStatus:
    """Snapshot of the cache connection."""

    state: ConnectionState
    since: datetime
    connection_attempts: int = 0

    @property
    def live(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "state": self.state.value,
            "since": self.since.isoformat(),
            "live": self.live,
            "connection_attempts": self.connection_attempts,
        }


class HealthReporter:
    """Read-only view of the connection manager for the health endpoints.

    Never issues a Redis command, so it cannot block.
    """

    def __init__(self, connection: CacheConnectionManager):
        self._connection = connection

    def status(self) -> CacheStatus:
        return CacheStatus(
            state=self._connection.state,
            since=self._connection.since,
            connection_attempts=self._connection.connection_attempts,
        )
