import requests
from datetime import date
from typing import Any, Dict, List, Optional, Union
import logging

from moviecritic import config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed API call. status_code is None when the request never got a response."""

    def __init__(self, status_code: Optional[int], detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}" if status_code else detail)

    @property
    def kind(self) -> str:
        if self.status_code is None:
            return "TransportError"
        if self.status_code in (400, 422):
            return "ValidationError"
        if self.status_code == 404:
            return "NotFound"
        return "StoreError"


def _iso(value: Union[date, str]) -> str:
    return value.isoformat() if isinstance(value, date) else value


# Client for the MovieCritic REST API
class MovieCriticAPI:
    """
    Thin wrapper over the REST surface.

    Any object with a requests.Session-style ``request(method, url, json=,
    params=, timeout=)`` can be passed as session.
    """

    def __init__(self, base_url: Optional[str] = None, session=None, timeout: Optional[float] = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout if timeout is not None else config.CLIENT_TIMEOUT_SECONDS

    def _make_request(self, method: str, endpoint: str, json: Dict = None, params: Dict = None) -> Any:
        """
        Make HTTP request to the API.

        Args:
            method: HTTP method
            endpoint: API endpoint (e.g., "/movies/1")
            json: Request body
            params: Query parameters

        Returns:
            Decoded JSON response

        Raises:
            ApiError: On a timeout, a transport failure, any status >= 400
                or a success response whose body is not JSON
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"API request failed for {method} {endpoint}: {str(e)}")
            raise ApiError(None, f"Request failed: {str(e)}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            logger.warning(f"API error for {method} {endpoint}: {response.status_code} {detail}")
            raise ApiError(response.status_code, str(detail))

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"API returned a non-JSON body for {method} {endpoint}")
            raise ApiError(None, "Invalid response from server") from e

        logger.debug(f"API request successful: {method} {endpoint}")
        return data

    # ==================== MOVIES ====================

    def list_movies(self, search: Optional[str] = None) -> List[Dict]:
        params = {"search": search} if search else None
        return self._make_request("GET", "/movies", params=params)

    def get_movie(self, movie_id: int) -> Dict:
        return self._make_request("GET", f"/movies/{movie_id}")

    def create_movie(self, name: str, release_date: Union[date, str]) -> Dict:
        """Returns {message, movie}"""
        return self._make_request("POST", "/movies", json={"name": name, "release_date": _iso(release_date)})

    def update_movie(self, movie_id: int, name: str, release_date: Union[date, str]) -> Dict:
        """Returns {message, movie}"""
        return self._make_request(
            "PUT", f"/movies/{movie_id}", json={"name": name, "release_date": _iso(release_date)}
        )

    def delete_movie(self, movie_id: int) -> Dict:
        """Returns {message, movie}"""
        return self._make_request("DELETE", f"/movies/{movie_id}")

    # ==================== REVIEWS ====================

    def list_reviews(self, movie_id: int) -> List[Dict]:
        return self._make_request("GET", f"/reviews/movie/{movie_id}")

    def get_review(self, review_id: int) -> Dict:
        return self._make_request("GET", f"/reviews/{review_id}")

    def search_reviews(self, reviewer_name: str) -> List[Dict]:
        return self._make_request("GET", "/reviews/search", params={"reviewer_name": reviewer_name})

    def create_review(
        self,
        movie_id: int,
        rating: float,
        review_comments: str = "",
        reviewer_name: Optional[str] = None,
    ) -> Dict:
        """Returns {message, review, movie}"""
        body = {"movie_id": movie_id, "rating": rating, "review_comments": review_comments}
        if reviewer_name is not None:
            body["reviewer_name"] = reviewer_name
        return self._make_request("POST", "/reviews", json=body)

    def update_review(self, review_id: int, rating: float, **fields) -> Dict:
        """
        Update a review. Extra keyword fields (review_comments, reviewer_name)
        are sent only when given. Returns {message, review, movie}.
        """
        body = {"rating": rating}
        body.update(fields)
        return self._make_request("PUT", f"/reviews/{review_id}", json=body)

    def delete_review(self, review_id: int) -> Dict:
        """Returns {message, review, movie}"""
        return self._make_request("DELETE", f"/reviews/{review_id}")
