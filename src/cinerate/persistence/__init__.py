"""Review persistence."""

from cinerate.persistence.models import Review, ReviewCreate, ReviewDelete
from cinerate.persistence.store import (
    InMemoryReviewStore,
    ReviewStore,
    ReviewStoreError,
    SqlReviewStore,
    create_review_store,
)

__all__ = [
    "Review",
    "ReviewCreate",
    "ReviewDelete",
    "ReviewStore",
    "ReviewStoreError",
    "SqlReviewStore",
    "InMemoryReviewStore",
    "create_review_store",
]
