"""
Rating Service - keeps each movie's aggregate rating in step with its reviews

Every review mutation path calls ``RatingAggregator.on_review_set_changed``
before committing, so the review change and the new average land in the same
transaction.
"""

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional
import logging

from moviecritic import config
from moviecritic.models.movie import Movie
from moviecritic.models.review import Review

logger = logging.getLogger(__name__)


class RatingAggregator:
    """Recomputes movie.average_rating from the full review set"""

    @staticmethod
    def compute_average(db: Session, movie_id: int) -> Optional[float]:
        """
        Mean rating of all reviews for a movie.

        Args:
            db: Database session
            movie_id: Movie ID

        Returns:
            Mean rounded to RATING_PRECISION digits, or None if the movie has no reviews
        """
        avg = db.query(func.avg(Review.rating)).filter(Review.movie_id == movie_id).scalar()
        if avg is None:
            return None
        return round(float(avg), config.RATING_PRECISION)

    @staticmethod
    def on_review_set_changed(db: Session, movie_id: int) -> Optional[float]:
        """
        Hook invoked after any review insert, update or delete.

        Flushes pending review changes so the aggregate query sees them, then
        writes the recomputed average onto the movie row. Does not commit;
        the caller owns the transaction.

        Args:
            db: Database session
            movie_id: ID of the movie whose review set changed

        Returns:
            The persisted average, or None if there are no reviews or the
            movie has been deleted in the meantime
        """
        db.flush()

        movie = db.get(Movie, movie_id)
        if movie is None:
            # Movie deleted concurrently; nothing to update
            logger.debug(f"Skipping rating recompute for missing movie {movie_id}")
            return None

        average = RatingAggregator.compute_average(db, movie_id)
        movie.average_rating = average
        db.flush()

        logger.debug(f"Movie {movie_id} average_rating -> {average}")
        return average
