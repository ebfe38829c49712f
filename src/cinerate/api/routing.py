"""Cacheable read routing.

Decides which inbound requests the cache-aside middleware may serve:
GET /{media_type}/{content_id} where media_type has a cache key space
and the first segment is not one of the service's own endpoints.
Everything else (writes, health, metrics, docs) passes through untouched.
"""

from __future__ import annotations

from collections.abc import Container

# First path segments that belong to non-review endpoints
RESERVED_SEGMENTS = frozenset({
    "add",
    "delete",
    "docs",
    "health",
    "metrics",
    "openapi.json",
    "redoc",
    "test",
})


def match_cached_read(
    method: str, path: str, media_types: Container[str]
) -> tuple[str, str] | None:
    """Match a cacheable review read.

    Returns:
        Tuple of (media_type, content_id), or None if the request must not
        go through the cache.
    """
    if method != "GET":
        return None

    parts = path.split("/")
    if len(parts) != 3 or parts[0] != "":
        return None

    _, media_type, content_id = parts
    if not media_type or not content_id:
        return None
    if media_type in RESERVED_SEGMENTS or media_type not in media_types:
        return None

    return (media_type, content_id)
