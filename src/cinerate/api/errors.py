"""Error responses for the review API.

Errors are returned as ``{"error": "<text>"}`` with the matching status code.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ReviewApiError(HTTPException):
    """Base exception for review API errors."""

    def __init__(self, status_code: int, text: str):
        self.text = text
        super().__init__(status_code=status_code, detail=text)


class UpstreamError(ReviewApiError):
    """The review store failed (500)."""

    def __init__(self, text: str):
        super().__init__(status_code=500, text=text)


async def review_api_exception_handler(request: Request, exc: ReviewApiError) -> JSONResponse:
    """Exception handler for ReviewApiError."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.text})


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})
