"""Review endpoints.

- GET  /{media_type}/{content_id}  reviews of one piece of content (cached)
- POST /add                        add a review
- POST /delete                     delete a user's review of a piece of content

Reads are served through CacheAsideMiddleware. Writes invalidate the
affected cache entries only after the store has committed them.
"""

from __future__ import annotations

import logging

import orjson
from fastapi import APIRouter, Depends
from starlette.responses import Response

from cinerate.api.deps import get_invalidation_service, get_review_store
from cinerate.api.errors import UpstreamError
from cinerate.cache import InvalidationService
from cinerate.persistence import ReviewCreate, ReviewDelete, ReviewStore, ReviewStoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


async def _invalidate(invalidation: InvalidationService, content_id: str, user_id: str) -> None:
    for result in await invalidation.invalidate_review(content_id, user_id):
        if not result.ok:
            logger.warning(
                f"Cache invalidation incomplete for {result.scope.value} {result.identifier}; "
                "stale entries expire with their TTL",
                extra=result.to_dict(),
            )


@router.post("/add", status_code=201)
async def add_review(
    payload: ReviewCreate,
    store: ReviewStore = Depends(get_review_store),
    invalidation: InvalidationService = Depends(get_invalidation_service),
) -> dict[str, str]:
    """Add a new review."""
    try:
        await store.insert(payload)
    except ReviewStoreError as e:
        logger.error(f"Error adding review: {e}")
        raise UpstreamError("Failed to add review") from e

    await _invalidate(invalidation, payload.content_id, payload.user_id)
    return {"message": "Review added"}


@router.post("/delete")
async def delete_review(
    payload: ReviewDelete,
    store: ReviewStore = Depends(get_review_store),
    invalidation: InvalidationService = Depends(get_invalidation_service),
) -> dict[str, str]:
    """Delete a review."""
    try:
        deleted = await store.delete_one(payload.content_id, payload.user_id)
    except ReviewStoreError as e:
        logger.error(f"Error deleting review: {e}")
        raise UpstreamError("Failed to delete review") from e

    if deleted:
        await _invalidate(invalidation, payload.content_id, payload.user_id)
    return {"message": "Review deleted"}


@router.get("/{media_type}/{content_id}")
async def get_content_reviews(
    media_type: str,
    content_id: str,
    store: ReviewStore = Depends(get_review_store),
) -> Response:
    """Get reviews for a specific content."""
    try:
        reviews = await store.find_by_content_and_type(media_type, content_id)
    except ReviewStoreError as e:
        logger.error(f"Error fetching reviews: {e}")
        raise UpstreamError("Failed to fetch reviews") from e

    return Response(
        content=orjson.dumps([review.model_dump(by_alias=True, mode="json") for review in reviews]),
        media_type="application/json",
    )
