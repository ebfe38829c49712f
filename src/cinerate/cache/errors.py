"""Exceptions raised inside the review cache layer.

None of these ever reach an HTTP caller: the middleware and the
invalidation service catch them and degrade to a miss or a no-op.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for cache layer failures."""


class CacheConnectionError(CacheError):
    """Redis is unreachable or the connection dropped."""


class CacheOperationError(CacheError):
    """A single GET/SET/DEL failed or timed out while the connection was live."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Cache {operation} failed: {message}")


class InvalidationError(CacheError):
    """An invalidation batch could not be issued at all."""
