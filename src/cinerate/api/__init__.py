"""HTTP API for the review service."""
