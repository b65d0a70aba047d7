"""
Client library for the MovieCritic API
"""
from moviecritic.client.api import ApiError, MovieCriticAPI
from moviecritic.client.cache import CacheState, QueryCache, movie_key, movies_key, reviews_key
from moviecritic.client.reconcile import is_temporary_id
from moviecritic.client.session import MovieCriticSession

__all__ = [
    "ApiError",
    "MovieCriticAPI",
    "CacheState",
    "QueryCache",
    "movie_key",
    "movies_key",
    "reviews_key",
    "is_temporary_id",
    "MovieCriticSession",
]
