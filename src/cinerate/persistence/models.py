"""Pydantic models for reviews.

JSON uses camelCase (userId, contentId, ...); Python code uses snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    """Body of POST /add."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId", min_length=1)
    content_id: str = Field(alias="contentId", min_length=1)
    media_type: str = Field(alias="mediaType", min_length=1)
    username: str | None = None
    review: str | None = None
    spoiler_contains: bool = Field(default=False, alias="spoilerContains")


class Review(ReviewCreate):
    """A persisted review."""

    id: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class ReviewDelete(BaseModel):
    """Body of POST /delete."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content_id: str = Field(alias="contentId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
