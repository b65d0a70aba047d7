"""
Review Schemas - Pydantic models for review request/response validation
Follows the same pattern as movie schemas for consistency
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from moviecritic import config
from moviecritic.schemas.movie import MovieResponse


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class ReviewCreate(BaseModel):
    """Schema for creating a review"""
    movie_id: int = Field(..., description="Movie ID", gt=0, strict=True)
    # strict: JSON true/false must not pass as 1.0/0.0; ints are still accepted
    rating: float = Field(
        ..., description="Rating value (0-10)", ge=config.MIN_RATING, le=config.MAX_RATING, strict=True
    )
    review_comments: str = Field("", max_length=5000, description="Review text")
    reviewer_name: Optional[str] = Field(None, max_length=255, description="Optional reviewer name")

    @field_validator('reviewer_name')
    @classmethod
    def clean_reviewer_name(cls, v):
        return _blank_to_none(v)


class ReviewUpdate(BaseModel):
    """
    Schema for updating a review.
    Rating is always required; the other fields change only when sent.
    """
    rating: float = Field(
        ..., description="New rating value (0-10)", ge=config.MIN_RATING, le=config.MAX_RATING, strict=True
    )
    review_comments: Optional[str] = Field(None, max_length=5000)
    reviewer_name: Optional[str] = Field(None, max_length=255)

    @field_validator('reviewer_name')
    @classmethod
    def clean_reviewer_name(cls, v):
        return _blank_to_none(v)


class ReviewResponse(BaseModel):
    """Schema for review response (matches database model)"""
    id: int
    movie_id: int
    reviewer_name: Optional[str] = None
    rating: float
    review_comments: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewMutationResponse(BaseModel):
    """
    Review plus the parent movie as it stands after the aggregate recompute,
    so clients can refresh the displayed average without a second request.
    """
    message: str
    review: ReviewResponse
    movie: Optional[MovieResponse] = Field(None, description="Parent movie with recomputed average_rating")
