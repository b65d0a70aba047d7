"""
Movie Schemas - Pydantic models for movie request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional

from moviecritic import config


class MovieCreate(BaseModel):
    """Schema for creating a movie"""
    name: str = Field(..., min_length=1, max_length=255, description="Movie title")
    release_date: date = Field(..., description="Release date (YYYY-MM-DD)")
    average_rating: Optional[float] = Field(
        None,
        ge=config.MIN_RATING,
        le=config.MAX_RATING,
        strict=True,
        description="Optional seed; replaced as soon as the movie gets reviews",
    )

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Movie name is required')
        return v

    @field_validator('release_date', mode='before')
    @classmethod
    def accept_datetime_strings(cls, v):
        """Browsers send either 2021-10-22 or a full ISO timestamp; keep the date part."""
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v


class MovieUpdate(MovieCreate):
    """Schema for replacing a movie's editable fields (PUT)"""


class MovieResponse(BaseModel):
    """Schema for movie response (matches database model)"""
    id: int
    name: str
    release_date: date
    average_rating: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MovieMutationResponse(BaseModel):
    """Envelope returned by create/update/delete"""
    message: str
    movie: MovieResponse

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Movie added successfully",
                "movie": {
                    "id": 1,
                    "name": "Dune",
                    "release_date": "2021-10-22",
                    "average_rating": None
                }
            }
        }
