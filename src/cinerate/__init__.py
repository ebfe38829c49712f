"""CineRate review service: review CRUD with a Redis cache-aside read layer."""

__version__ = "0.1.0"
