"""
Movie Routes - CRUD endpoints for movies
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.orm import Session
from typing import List, Optional

from moviecritic.database import get_db
from moviecritic.schemas.movie import (
    MovieCreate,
    MovieUpdate,
    MovieResponse,
    MovieMutationResponse
)
from moviecritic.services.movie_service import MovieService

router = APIRouter(prefix="/movies", tags=["Movies"])


@router.post("", response_model=MovieMutationResponse, status_code=status.HTTP_201_CREATED)
def add_movie(
    movie_data: MovieCreate,
    db: Session = Depends(get_db)
):
    """
    Add a new movie

    - **name**: Movie title (required)
    - **release_date**: Release date (required)
    - **average_rating**: Optional 0-10 seed, replaced once reviews exist
    """
    movie = MovieService.create_movie(db, movie_data)
    return {"message": "Movie added successfully", "movie": movie}


@router.get("", response_model=List[MovieResponse])
def list_movies(
    search: Optional[str] = Query(None, max_length=200, description="Filter by movie name"),
    db: Session = Depends(get_db)
):
    """Get all movies with their current average rating"""
    return MovieService.get_movies(db, search)


@router.get("/{movie_id}", response_model=MovieResponse)
def get_movie(
    movie_id: int = Path(..., description="Movie ID"),
    db: Session = Depends(get_db)
):
    """Get movie details by ID"""
    return MovieService.get_movie(db, movie_id)


@router.put("/{movie_id}", response_model=MovieMutationResponse)
def update_movie(
    movie_data: MovieUpdate,
    movie_id: int = Path(..., description="Movie ID"),
    db: Session = Depends(get_db)
):
    """Update a movie's name and release date"""
    movie = MovieService.update_movie(db, movie_id, movie_data)
    return {"message": "Movie updated successfully", "movie": movie}


@router.delete("/{movie_id}", response_model=MovieMutationResponse)
def delete_movie(
    movie_id: int = Path(..., description="Movie ID"),
    db: Session = Depends(get_db)
):
    """
    Delete a movie

    ⚠️ All reviews of the movie are deleted with it.
    """
    return MovieService.delete_movie(db, movie_id)
