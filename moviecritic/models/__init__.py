"""
Import all models to ensure they are registered with SQLAlchemy
"""
from moviecritic.models.movie import Movie
from moviecritic.models.review import Review

__all__ = [
    "Movie",
    "Review",
]
