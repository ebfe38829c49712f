"""API routers for the review service."""

from cinerate.api.routers import health, metrics, reviews

__all__ = ["health", "metrics", "reviews"]
