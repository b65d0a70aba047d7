"""
MovieCriticSession - what a UI binds to

Reads go through the query cache; mutations are applied optimistically to
every cache key that depends on them and reconciled with the server's answer.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import logging

from moviecritic.client.api import ApiError, MovieCriticAPI
from moviecritic.client.cache import CacheKey, QueryCache, movie_key, movies_key, reviews_key
from moviecritic.client.reconcile import (
    OptimisticUpdate,
    fetch_query,
    patch_record,
    provisional_average,
    remove_record,
    replace_record,
    run_optimistic_mutation,
    temporary_id,
)

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def log_notifier(level: str, message: str) -> None:
    """Default notifier: success at INFO, anything else at WARNING."""
    if level == "success":
        logger.info(message)
    else:
        logger.warning(message)


class MovieCriticSession:
    """Cache-backed access to movies and reviews for a view layer"""

    def __init__(
        self,
        api: Optional[MovieCriticAPI] = None,
        cache: Optional[QueryCache] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.api = api if api is not None else MovieCriticAPI()
        self.cache = cache if cache is not None else QueryCache()
        self.notify = notifier or log_notifier

    # ==================== READS ====================

    def peek(self, key: CacheKey) -> Any:
        """Current cached data for rendering, including provisional records."""
        return self.cache.peek(key)

    def movies(self, force: bool = False) -> List[Dict]:
        return fetch_query(self.cache, movies_key(), self.api.list_movies, force)

    def movie(self, movie_id: int, force: bool = False) -> Dict:
        return fetch_query(self.cache, movie_key(movie_id), lambda: self.api.get_movie(movie_id), force)

    def reviews(self, movie_id: int, force: bool = False) -> List[Dict]:
        return fetch_query(self.cache, reviews_key(movie_id), lambda: self.api.list_reviews(movie_id), force)

    # ==================== HELPERS ====================

    def _mutate(
        self,
        success_message: str,
        failure_message: str,
        updates: Sequence[OptimisticUpdate],
        mutate: Callable[[], Any],
        invalidate: Sequence[CacheKey] = (),
        remove: Sequence[CacheKey] = (),
    ) -> Any:
        try:
            result = run_optimistic_mutation(self.cache, updates, mutate, invalidate, remove)
        except ApiError as exc:
            self.notify("error", f"{failure_message}: {exc.detail}")
            raise
        self.notify("success", success_message)
        return result

    def _speculative_average(self, movie_id: int, fallback: Optional[float]) -> Optional[float]:
        """Average from the (already provisional) cached review list, if there is one."""
        reviews = self.cache.peek(reviews_key(movie_id))
        if reviews is None:
            return fallback
        return provisional_average(reviews)

    def _rating_updates(self, movie_id: int) -> List[OptimisticUpdate]:
        """
        Movie detail and movies list both show average_rating, so every review
        mutation patches them. Must come after the reviews-list update.
        """

        def apply_detail(movie: Dict) -> Dict:
            return dict(movie, average_rating=self._speculative_average(movie_id, movie.get("average_rating")))

        def apply_list(movies: List[Dict]) -> List[Dict]:
            current = next((m for m in movies if m.get("id") == movie_id), None)
            if current is None:
                return movies
            average = self._speculative_average(movie_id, current.get("average_rating"))
            return patch_record(movies, movie_id, {"average_rating": average})

        def reconcile_detail(movie: Dict, result: Dict) -> Dict:
            return result["movie"] if result.get("movie") else movie

        def reconcile_list(movies: List[Dict], result: Dict) -> List[Dict]:
            confirmed = result.get("movie")
            if not confirmed or not any(m.get("id") == movie_id for m in movies):
                return movies
            return replace_record(movies, movie_id, confirmed)

        return [
            OptimisticUpdate(movie_key(movie_id), apply_detail, reconcile_detail),
            OptimisticUpdate(movies_key(), apply_list, reconcile_list),
        ]

    # ==================== REVIEW MUTATIONS ====================

    def add_review(
        self,
        movie_id: int,
        rating: float,
        review_comments: str = "",
        reviewer_name: Optional[str] = None,
    ) -> Dict:
        """
        Add a review. The cached review list shows it at once under a
        temporary id, which is swapped for the real id when the server answers.

        Returns:
            Server result {message, review, movie}
        """
        provisional = {
            "id": temporary_id(),
            "movie_id": movie_id,
            "reviewer_name": reviewer_name,
            "rating": float(rating),
            "review_comments": review_comments,
        }

        updates = [
            OptimisticUpdate(
                reviews_key(movie_id),
                lambda reviews: reviews + [provisional],
                lambda reviews, result: replace_record(reviews, provisional["id"], result["review"]),
            ),
            *self._rating_updates(movie_id),
        ]
        return self._mutate(
            "Review added successfully",
            "Failed to add review",
            updates,
            lambda: self.api.create_review(movie_id, rating, review_comments, reviewer_name),
        )

    def edit_review(
        self,
        movie_id: int,
        review_id: int,
        rating: float,
        review_comments: Optional[str] = None,
        reviewer_name: Optional[str] = None,
    ) -> Dict:
        """Update a review; only the fields given are sent besides rating."""
        fields = {"rating": float(rating)}
        if review_comments is not None:
            fields["review_comments"] = review_comments
        if reviewer_name is not None:
            fields["reviewer_name"] = reviewer_name

        updates = [
            OptimisticUpdate(
                reviews_key(movie_id),
                lambda reviews: patch_record(reviews, review_id, fields),
                lambda reviews, result: replace_record(reviews, review_id, result["review"]),
            ),
            *self._rating_updates(movie_id),
        ]
        extra = {k: v for k, v in fields.items() if k != "rating"}
        return self._mutate(
            "Review updated successfully",
            "Failed to update review",
            updates,
            lambda: self.api.update_review(review_id, rating, **extra),
        )

    def delete_review(self, movie_id: int, review_id: int) -> Dict:
        updates = [
            OptimisticUpdate(
                reviews_key(movie_id),
                lambda reviews: remove_record(reviews, review_id),
                lambda reviews, result: remove_record(reviews, review_id),
            ),
            *self._rating_updates(movie_id),
        ]
        return self._mutate(
            "Review deleted successfully",
            "Failed to delete review",
            updates,
            lambda: self.api.delete_review(review_id),
        )

    # ==================== MOVIE MUTATIONS ====================

    def add_movie(self, name: str, release_date: Union[date, str]) -> Dict:
        provisional = {
            "id": temporary_id(),
            "name": name,
            "release_date": release_date.isoformat() if isinstance(release_date, date) else release_date,
            "average_rating": None,
        }

        updates = [
            OptimisticUpdate(
                movies_key(),
                lambda movies: movies + [provisional],
                lambda movies, result: replace_record(movies, provisional["id"], result["movie"]),
            ),
        ]
        result = self._mutate(
            "Movie added successfully",
            "Failed to add movie",
            updates,
            lambda: self.api.create_movie(name, release_date),
        )

        # The server just told us everything about the new movie
        confirmed = result["movie"]
        self.cache.set(movie_key(confirmed["id"]), confirmed)
        self.cache.set(reviews_key(confirmed["id"]), [])
        return result

    def edit_movie(self, movie_id: int, name: str, release_date: Union[date, str]) -> Dict:
        fields = {
            "name": name,
            "release_date": release_date.isoformat() if isinstance(release_date, date) else release_date,
        }

        updates = [
            OptimisticUpdate(
                movie_key(movie_id),
                lambda movie: dict(movie, **fields),
                lambda movie, result: result["movie"],
            ),
            OptimisticUpdate(
                movies_key(),
                lambda movies: patch_record(movies, movie_id, fields),
                lambda movies, result: replace_record(movies, movie_id, result["movie"]),
            ),
        ]
        return self._mutate(
            "Movie updated successfully",
            "Failed to update movie",
            updates,
            lambda: self.api.update_movie(movie_id, name, release_date),
        )

    def delete_movie(self, movie_id: int) -> Dict:
        """Delete a movie; its detail and review entries go with it."""
        updates = [
            OptimisticUpdate(
                movies_key(),
                lambda movies: remove_record(movies, movie_id),
                lambda movies, result: remove_record(movies, movie_id),
            ),
        ]
        return self._mutate(
            "Movie deleted successfully",
            "Failed to delete movie",
            updates,
            lambda: self.api.delete_movie(movie_id),
            remove=[movie_key(movie_id), reviews_key(movie_id)],
        )
