"""Cache key schema for the review service.

Key format: {namespace}:reviews:{media_type}:{content_id}

Where:
- namespace: service prefix (default "review-service") scoping our keys in a shared Redis
- "reviews": the one cached read shape, the review list of a piece of content
- media_type: "movie", "tv", ...
- content_id: identifier of the reviewed content

Components are percent-encoded, so ":" only ever appears as the delimiter and
two distinct (media_type, content_id) pairs can never produce the same key.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import quote

READ_SHAPE = "reviews"


def _encode(component: str) -> str:
    return quote(component, safe="")


class CacheKeys:
    """Cache key generator following a consistent naming convention."""

    @classmethod
    def read_key(cls, namespace: str, media_type: str, content_id: str) -> str:
        """Key for the cached review list of one piece of content."""
        return f"{namespace}:{READ_SHAPE}:{_encode(media_type)}:{_encode(content_id)}"

    @classmethod
    def content_invalidation_keys(
        cls, namespace: str, content_id: str, media_types: Iterable[str]
    ) -> frozenset[str]:
        """Every read key that could exist for a content id.

        The read key space holds one key per (media_type, content_id) pair and
        media types come from a small known set, so the keys are enumerated
        directly instead of scanning the keyspace.
        """
        return frozenset(
            cls.read_key(namespace, media_type, content_id) for media_type in media_types
        )

    @classmethod
    def user_invalidation_keys(cls, namespace: str, user_id: str) -> frozenset[str]:
        """Keys of cached views scoped to a single user.

        No user-scoped read path is cached, so this is always empty.
        """
        return frozenset()

