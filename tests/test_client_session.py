"""
End-to-end optimistic flows: client session -> in-process API -> SQLite
"""
import copy

import httpx
import pytest
import requests

from moviecritic.client.api import ApiError, MovieCriticAPI
from moviecritic.client.cache import CacheState, QueryCache, movie_key, movies_key, reviews_key
from moviecritic.client.reconcile import is_temporary_id
from moviecritic.client.session import MovieCriticSession


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def __call__(self, level, message):
        self.messages.append((level, message))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def session(api, notifier):
    return MovieCriticSession(api=api, cache=QueryCache(stale_time=60), notifier=notifier)


@pytest.fixture
def dune(create_movie, create_review):
    movie = create_movie("Dune")
    create_review(movie["id"], 8, "Great", reviewer_name="Paul")
    create_review(movie["id"], 6, "Long")
    return movie


def prime(session, movie_id):
    session.movies()
    session.movie(movie_id)
    session.reviews(movie_id)


def spy_on(monkeypatch, api, method_name, session, movie_id):
    """Capture what the cache shows while the server call is in flight."""
    seen = {}
    original = getattr(api, method_name)

    def spying(*args, **kwargs):
        seen["reviews"] = copy.deepcopy(session.peek(reviews_key(movie_id)))
        seen["movie"] = copy.deepcopy(session.peek(movie_key(movie_id)))
        seen["movies"] = copy.deepcopy(session.peek(movies_key()))
        seen["state"] = session.cache.state(reviews_key(movie_id))
        return original(*args, **kwargs)

    monkeypatch.setattr(api, method_name, spying)
    return seen


class TestReads:

    def test_reads_populate_cache(self, session, dune):
        prime(session, dune["id"])

        assert session.movie(dune["id"])["average_rating"] == 7.0
        assert len(session.reviews(dune["id"])) == 2
        for key in (movies_key(), movie_key(dune["id"]), reviews_key(dune["id"])):
            assert session.cache.state(key) == CacheState.FRESH

    def test_unknown_movie_raises_not_found(self, session):
        with pytest.raises(ApiError) as exc_info:
            session.movie(999)

        assert exc_info.value.kind == "NotFound"
        assert session.cache.state(movie_key(999)) == CacheState.EMPTY


class TestAddReview:

    def test_provisional_review_then_real_id(self, session, api, dune, monkeypatch, notifier):
        prime(session, dune["id"])
        seen = spy_on(monkeypatch, api, "create_review", session, dune["id"])

        result = session.add_review(dune["id"], 10, "Masterpiece", reviewer_name="Chani")

        # While in flight
        assert seen["state"] == CacheState.OPTIMISTIC_PENDING
        assert len(seen["reviews"]) == 3
        assert is_temporary_id(seen["reviews"][-1]["id"])
        assert seen["movie"]["average_rating"] == 8.0
        assert next(m for m in seen["movies"] if m["id"] == dune["id"])["average_rating"] == 8.0

        # After the server answered
        reviews = session.peek(reviews_key(dune["id"]))
        assert len(reviews) == 3
        assert not any(is_temporary_id(r["id"]) for r in reviews)
        assert reviews[-1]["id"] == result["review"]["id"]
        assert len({r["id"] for r in reviews}) == 3
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 8.0
        assert session.peek(movies_key())[0]["average_rating"] == 8.0
        assert session.cache.state(reviews_key(dune["id"])) == CacheState.FRESH
        assert notifier.messages == [("success", "Review added successfully")]

    def test_cache_matches_server_after_add(self, session, client, dune):
        prime(session, dune["id"])

        session.add_review(dune["id"], 10, "Masterpiece")

        assert session.peek(reviews_key(dune["id"])) == client.get(f"/reviews/movie/{dune['id']}").json()
        assert session.peek(movie_key(dune["id"])) == client.get(f"/movies/{dune['id']}").json()

    def test_rejected_review_rolls_back_exactly(self, session, api, dune, monkeypatch, notifier):
        prime(session, dune["id"])
        before_reviews = copy.deepcopy(session.peek(reviews_key(dune["id"])))
        before_movie = copy.deepcopy(session.peek(movie_key(dune["id"])))
        seen = spy_on(monkeypatch, api, "create_review", session, dune["id"])

        with pytest.raises(ApiError) as exc_info:
            session.add_review(dune["id"], 11, "Too good")

        assert exc_info.value.kind == "ValidationError"
        assert len(seen["reviews"]) == 3  # it was shown while pending
        assert session.peek(reviews_key(dune["id"])) == before_reviews
        assert session.peek(movie_key(dune["id"])) == before_movie
        assert session.cache.state(reviews_key(dune["id"])) == CacheState.STALE
        assert notifier.messages[-1][0] == "error"

    def test_timeout_rolls_back(self, dune, notifier, client):
        class TimingOutSession:
            def request(self, method, url, **kwargs):
                if method == "POST":
                    raise requests.exceptions.Timeout("read timed out")
                return client.request(method, url, **kwargs)

        api = MovieCriticAPI(base_url="http://testserver", session=TimingOutSession(), timeout=0.1)
        session = MovieCriticSession(api=api, notifier=notifier)
        prime(session, dune["id"])
        before = copy.deepcopy(session.peek(reviews_key(dune["id"])))

        with pytest.raises(ApiError) as exc_info:
            session.add_review(dune["id"], 9, "Slow network")

        assert exc_info.value.kind == "TransportError"
        assert session.peek(reviews_key(dune["id"])) == before
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 7.0

    def test_non_json_reply_rolls_back_and_notifies(self, dune, notifier, client):
        class HtmlReplySession:
            def request(self, method, url, **kwargs):
                if method == "POST":
                    return httpx.Response(200, text="<html>proxy login page</html>")
                return client.request(method, url, **kwargs)

        api = MovieCriticAPI(base_url="http://testserver", session=HtmlReplySession())
        session = MovieCriticSession(api=api, notifier=notifier)
        prime(session, dune["id"])
        before = copy.deepcopy(session.peek(reviews_key(dune["id"])))

        with pytest.raises(ApiError) as exc_info:
            session.add_review(dune["id"], 9, "Behind a proxy")

        assert exc_info.value.kind == "TransportError"
        assert session.peek(reviews_key(dune["id"])) == before
        assert notifier.messages[-1] == ("error", "Failed to add review: Invalid response from server")

    def test_add_without_cached_list(self, session, dune):
        session.add_review(dune["id"], 10, "Cold cache")

        assert session.cache.state(reviews_key(dune["id"])) == CacheState.EMPTY
        assert session.movie(dune["id"])["average_rating"] == 8.0


class TestEditAndDeleteReview:

    def test_edit_review(self, session, api, dune, monkeypatch):
        prime(session, dune["id"])
        review_id = session.peek(reviews_key(dune["id"]))[1]["id"]
        seen = spy_on(monkeypatch, api, "update_review", session, dune["id"])

        result = session.edit_review(dune["id"], review_id, 10, review_comments="Grew on me")

        assert seen["reviews"][1]["rating"] == 10.0
        assert seen["movie"]["average_rating"] == 9.0
        reviews = session.peek(reviews_key(dune["id"]))
        assert reviews[1] == result["review"]
        assert reviews[1]["review_comments"] == "Grew on me"
        assert reviews[0]["reviewer_name"] == "Paul"
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 9.0

    def test_failed_edit_restores_review(self, session, dune):
        prime(session, dune["id"])
        before = copy.deepcopy(session.peek(reviews_key(dune["id"])))

        with pytest.raises(ApiError):
            session.edit_review(dune["id"], before[0]["id"], -1)

        assert session.peek(reviews_key(dune["id"])) == before

    def test_delete_review_updates_average(self, session, dune):
        prime(session, dune["id"])
        added = session.add_review(dune["id"], 10, "Masterpiece")
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 8.0

        session.delete_review(dune["id"], added["review"]["id"])

        assert [r["rating"] for r in session.peek(reviews_key(dune["id"]))] == [8.0, 6.0]
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 7.0

    def test_deleting_every_review_shows_no_rating(self, session, dune):
        prime(session, dune["id"])

        for review in list(session.peek(reviews_key(dune["id"]))):
            session.delete_review(dune["id"], review["id"])

        assert session.peek(reviews_key(dune["id"])) == []
        assert session.peek(movie_key(dune["id"]))["average_rating"] is None
        assert session.peek(movies_key())[0]["average_rating"] is None

    def test_delete_missing_review_rolls_back(self, session, dune, notifier):
        prime(session, dune["id"])
        before = copy.deepcopy(session.peek(reviews_key(dune["id"])))

        with pytest.raises(ApiError) as exc_info:
            session.delete_review(dune["id"], 999)

        assert exc_info.value.kind == "NotFound"
        assert session.peek(reviews_key(dune["id"])) == before
        assert notifier.messages[-1] == ("error", "Failed to delete review: Review not found")


class TestMovieMutations:

    def test_add_movie(self, session, api, monkeypatch):
        session.movies()
        seen = {}
        original = api.create_movie

        def spying(*args, **kwargs):
            seen["movies"] = copy.deepcopy(session.peek(movies_key()))
            return original(*args, **kwargs)

        monkeypatch.setattr(api, "create_movie", spying)

        result = session.add_movie("Arrival", "2016-11-11")

        assert is_temporary_id(seen["movies"][0]["id"])
        movies = session.peek(movies_key())
        assert movies == [result["movie"]]
        assert session.cache.state(movie_key(result["movie"]["id"])) == CacheState.FRESH
        assert session.peek(reviews_key(result["movie"]["id"])) == []

    def test_failed_add_movie_disappears(self, session):
        session.movies()

        with pytest.raises(ApiError):
            session.add_movie("", "2016-11-11")

        assert session.peek(movies_key()) == []

    def test_edit_movie(self, session, dune):
        prime(session, dune["id"])

        session.edit_movie(dune["id"], "Dune: Part One", "2021-10-22")

        assert session.peek(movie_key(dune["id"]))["name"] == "Dune: Part One"
        assert session.peek(movies_key())[0]["name"] == "Dune: Part One"
        assert session.peek(movie_key(dune["id"]))["average_rating"] == 7.0

    def test_delete_movie_drops_dependent_keys(self, session, client, dune):
        prime(session, dune["id"])

        session.delete_movie(dune["id"])

        assert session.peek(movies_key()) == []
        assert session.cache.state(movie_key(dune["id"])) == CacheState.EMPTY
        assert session.cache.state(reviews_key(dune["id"])) == CacheState.EMPTY
        assert client.get(f"/reviews/movie/{dune['id']}").status_code == 404
