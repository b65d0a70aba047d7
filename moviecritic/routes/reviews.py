"""
Review Routes - API endpoints for movie reviews
Follows RESTful conventions and the movie routes pattern
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.orm import Session
from typing import List, Optional

from moviecritic.database import get_db
from moviecritic.schemas.review import (
    ReviewCreate,
    ReviewUpdate,
    ReviewResponse,
    ReviewMutationResponse
)
from moviecritic.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


# ==================== REVIEW CRUD ENDPOINTS ====================

@router.post("", response_model=ReviewMutationResponse, status_code=status.HTTP_201_CREATED)
def add_review(
    review_data: ReviewCreate,
    db: Session = Depends(get_db)
):
    """
    Add a review to a movie

    - **movie_id**: Movie ID (required)
    - **rating**: Rating value from 0 to 10 (required)
    - **review_comments**: Review text
    - **reviewer_name**: Optional

    The response includes the movie with its recomputed average rating.
    """
    return ReviewService.create_review(db, review_data)


# Static paths must be registered before /{review_id}

@router.get("/search", response_model=List[ReviewResponse])
def search_reviews(
    reviewer_name: Optional[str] = Query(None, max_length=255, description="Part of the reviewer's name"),
    db: Session = Depends(get_db)
):
    """Find reviews by reviewer name (case-insensitive)"""
    return ReviewService.search_by_reviewer(db, reviewer_name)


@router.get("/movie/{movie_id}", response_model=List[ReviewResponse])
def get_reviews_for_movie(
    movie_id: int = Path(..., description="Movie ID"),
    db: Session = Depends(get_db)
):
    """
    Get all reviews for a movie

    Returns an empty list for a movie without reviews, 404 if the movie is unknown.
    """
    return ReviewService.get_reviews_for_movie(db, movie_id)


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(
    review_id: int = Path(..., description="Review ID"),
    db: Session = Depends(get_db)
):
    """Get a specific review by ID"""
    return ReviewService.get_review(db, review_id)


@router.put("/{review_id}", response_model=ReviewMutationResponse)
def update_review(
    update_data: ReviewUpdate,
    review_id: int = Path(..., description="Review ID"),
    db: Session = Depends(get_db)
):
    """
    Update a review

    - **rating**: New rating value (0-10, required)
    - **review_comments** / **reviewer_name**: changed only when sent
    """
    return ReviewService.update_review(db, review_id, update_data)


@router.delete("/{review_id}", response_model=ReviewMutationResponse)
def delete_review(
    review_id: int = Path(..., description="Review ID"),
    db: Session = Depends(get_db)
):
    """Delete a review by ID; the movie's average rating is recomputed"""
    return ReviewService.delete_review(db, review_id)
