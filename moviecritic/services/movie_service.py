"""
Movie Service - Handle all movie-related business logic
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Optional
import logging

from moviecritic.models.movie import Movie
from moviecritic.schemas.movie import MovieCreate, MovieUpdate, MovieResponse
from moviecritic.utils.errors import NotFound, StoreError

logger = logging.getLogger(__name__)


class MovieService:
    """Service for movie operations"""

    @staticmethod
    def create_movie(db: Session, movie_data: MovieCreate) -> Movie:
        """
        Create a movie

        average_rating, if supplied, is only a seed: the first review
        mutation overwrites it with the real aggregate.
        """
        movie = Movie(
            name=movie_data.name,
            release_date=movie_data.release_date,
            average_rating=movie_data.average_rating,
        )
        try:
            db.add(movie)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Failed to add movie", exc_info=True)
            raise StoreError("Failed to add movie")

        db.refresh(movie)
        logger.info(f"Movie {movie.id} created: {movie.name}")
        return movie

    @staticmethod
    def get_movies(db: Session, search: Optional[str] = None) -> List[Movie]:
        """Get all movies, optionally filtered by a case-insensitive name match"""
        query = db.query(Movie)

        if search and search.strip():
            query = query.filter(Movie.name.ilike(f"%{search.strip()}%"))

        return query.order_by(Movie.id).all()

    @staticmethod
    def get_movie(db: Session, movie_id: int) -> Movie:
        """Get a movie by ID or raise NotFound"""
        movie = db.get(Movie, movie_id)
        if not movie:
            raise NotFound("Movie not found")
        return movie

    @staticmethod
    def update_movie(db: Session, movie_id: int, movie_data: MovieUpdate) -> Movie:
        """Replace a movie's name and release date (and optional rating seed)"""
        movie = MovieService.get_movie(db, movie_id)

        movie.name = movie_data.name
        movie.release_date = movie_data.release_date
        if "average_rating" in movie_data.model_fields_set:
            movie.average_rating = movie_data.average_rating

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"Failed to update movie {movie_id}", exc_info=True)
            raise StoreError("Failed to update movie")

        db.refresh(movie)
        return movie

    @staticmethod
    def delete_movie(db: Session, movie_id: int) -> Dict:
        """
        Delete a movie and, through the cascade, all of its reviews

        Returns:
            Dict with message and a snapshot of the deleted movie
        """
        movie = MovieService.get_movie(db, movie_id)
        deleted = MovieResponse.model_validate(movie)
        review_count = len(movie.reviews)

        try:
            db.delete(movie)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"Failed to delete movie {movie_id}", exc_info=True)
            raise StoreError("Failed to delete movie")

        logger.info(f"Movie {movie_id} deleted along with {review_count} review(s)")
        return {"message": "Movie deleted successfully", "movie": deleted}
