"""
Review Service - Handle all review-related business logic
Every mutation recomputes the parent movie's aggregate rating before commit
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Optional
import logging

from moviecritic.models.movie import Movie
from moviecritic.models.review import Review
from moviecritic.schemas.movie import MovieResponse
from moviecritic.schemas.review import ReviewCreate, ReviewUpdate, ReviewResponse
from moviecritic.services.rating_service import RatingAggregator
from moviecritic.utils.errors import NotFound, StoreError, ValidationError

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for movie review operations"""

    @staticmethod
    def _mutation_result(message: str, review: ReviewResponse, movie: Optional[Movie]) -> Dict:
        return {
            "message": message,
            "review": review,
            "movie": MovieResponse.model_validate(movie) if movie is not None else None,
        }

    @staticmethod
    def _commit_with_recompute(db: Session, movie_id: int, failure_message: str) -> None:
        """Recompute the aggregate and commit, all in the current transaction."""
        try:
            RatingAggregator.on_review_set_changed(db, movie_id)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"{failure_message} (movie {movie_id})", exc_info=True)
            raise StoreError(failure_message)

    @staticmethod
    def create_review(db: Session, review_data: ReviewCreate) -> Dict:
        """
        Create a review bound to an existing movie

        Args:
            db: Database session
            review_data: ReviewCreate schema

        Returns:
            Dict with message, the new review and the movie with its new average

        Raises:
            NotFound: If the movie does not exist
            StoreError: If the write fails
        """
        movie = db.get(Movie, review_data.movie_id)
        if not movie:
            raise NotFound("Movie not found")

        review = Review(
            movie_id=review_data.movie_id,
            reviewer_name=review_data.reviewer_name,
            rating=review_data.rating,
            review_comments=review_data.review_comments,
        )
        db.add(review)
        ReviewService._commit_with_recompute(db, movie.id, "Failed to add review")

        db.refresh(review)
        db.refresh(movie)
        logger.info(f"Review {review.id} added to movie {movie.id}")
        return ReviewService._mutation_result(
            "Review added successfully", ReviewResponse.model_validate(review), movie
        )

    @staticmethod
    def get_review(db: Session, review_id: int) -> Review:
        """Get a review by ID or raise NotFound"""
        review = db.get(Review, review_id)
        if not review:
            raise NotFound("Review not found")
        return review

    @staticmethod
    def get_reviews_for_movie(db: Session, movie_id: int) -> List[Review]:
        """
        Get all reviews for a movie, oldest first

        Raises:
            NotFound: If the movie does not exist
        """
        if not db.get(Movie, movie_id):
            raise NotFound("Movie not found")

        return db.query(Review).filter(
            Review.movie_id == movie_id
        ).order_by(Review.id).all()

    @staticmethod
    def search_by_reviewer(db: Session, reviewer_name: str) -> List[Review]:
        """Case-insensitive substring search on reviewer name"""
        reviewer_name = (reviewer_name or "").strip()
        if not reviewer_name:
            raise ValidationError("Reviewer name is required to search")

        return db.query(Review).filter(
            Review.reviewer_name.ilike(f"%{reviewer_name}%")
        ).order_by(Review.id).all()

    @staticmethod
    def update_review(db: Session, review_id: int, update_data: ReviewUpdate) -> Dict:
        """
        Update a review in place

        Only fields present in the request are changed; rating is always present.

        Raises:
            NotFound: If the review does not exist
            StoreError: If the write fails
        """
        review = ReviewService.get_review(db, review_id)

        for field, value in update_data.model_dump(exclude_unset=True).items():
            if field == "review_comments" and value is None:
                continue
            setattr(review, field, value)

        movie_id = review.movie_id
        ReviewService._commit_with_recompute(db, movie_id, "Failed to update review")

        db.refresh(review)
        movie = db.get(Movie, movie_id)
        return ReviewService._mutation_result(
            "Review updated successfully", ReviewResponse.model_validate(review), movie
        )

    @staticmethod
    def delete_review(db: Session, review_id: int) -> Dict:
        """
        Delete a review by ID

        Returns:
            Dict with message, the deleted review and the movie with its new average

        Raises:
            NotFound: If the review does not exist
            StoreError: If the write fails
        """
        review = ReviewService.get_review(db, review_id)
        deleted = ReviewResponse.model_validate(review)
        movie_id = review.movie_id

        db.delete(review)
        ReviewService._commit_with_recompute(db, movie_id, "Failed to delete review")

        movie = db.get(Movie, movie_id)
        logger.info(f"Review {review_id} deleted from movie {movie_id}")
        return ReviewService._mutation_result("Review deleted successfully", deleted, movie)
