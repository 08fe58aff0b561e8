"""
HTTP client for the CineTrack API.

``http`` can be any object with a requests-style ``request(method, url, ...)``
method: a ``requests.Session`` in production, FastAPI's ``TestClient`` in
tests.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging
import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientSession:
    """Signed-in user as handed over by the external auth provider"""
    user_id: str
    access_token: str


class CineTrackAPIError(Exception):
    """Non-2xx answer (or no answer) from the API"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class MovieNotCachedError(CineTrackAPIError):
    """Watchlist write rejected until the movie is fetched through /movies?id="""


class SessionExpiredError(CineTrackAPIError):
    """401: the access token expired or was rejected; the user must sign in again"""


class CineTrackAPI:
    def __init__(self, base_url: str = "", http: Any = None, timeout: Optional[float] = 10):
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, session: Optional[ClientSession] = None, **kwargs) -> Dict:
        headers = {"Content-Type": "application/json"}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.access_token}"
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            response = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {str(e)}")
            raise CineTrackAPIError(0, str(e))

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("error") or f"HTTP {response.status_code}"
            if response.status_code == 401:
                raise SessionExpiredError(response.status_code, message)
            if response.status_code == 404 and message == "Movie not cached":
                raise MovieNotCachedError(response.status_code, message)
            raise CineTrackAPIError(response.status_code, message)

        return body

    # ==================== CATALOG ====================

    def search(self, query: str, page: int = 1, **filters) -> Dict:
        """filters use the wire names, e.g. with_genres="878" """
        params = {"q": query, "page": page, **{k: v for k, v in filters.items() if v is not None}}
        return self._request("GET", "/movies", params=params)

    def get_details(self, tmdb_id: int, details: bool = False) -> Dict:
        """Fetch a movie through the proxy; this also populates the catalog cache"""
        params = {"id": tmdb_id, "details": str(details).lower()}
        return self._request("GET", "/movies", params=params)["movie"]

    def trending(self, time_window: str = "week", page: int = 1) -> Dict:
        return self._request("GET", "/trending", params={"time_window": time_window, "page": page})

    def recommendation(self, session: ClientSession, tmdb_id: int) -> str:
        body = {"tmdb_id": tmdb_id, "user_id": session.user_id}
        return self._request("POST", "/recommend", session, json=body)["recommendation"]

    def trailer_key(self, tmdb_id: int) -> Optional[str]:
        try:
            return self._request("GET", "/trailer", params={"id": tmdb_id}).get("videoKey")
        except CineTrackAPIError as e:
            if e.status_code == 404:
                return None
            raise

    # ==================== WATCHLIST ====================

    def upsert_entry(
        self,
        session: ClientSession,
        tmdb_id: int,
        category: str = "want-to-watch",
        rating: Optional[int] = None
    ) -> Tuple[Dict, bool]:
        """
        Returns:
            (entry, created)

        Raises:
            MovieNotCachedError: fetch the movie with get_details, then retry
        """
        body = self._request(
            "POST",
            "/watchlist-rpc",
            session,
            json={"user_id": session.user_id, "tmdb_id": tmdb_id, "category": category, "rating": rating},
        )
        return body["data"], bool(body.get("created"))

    def list_entries(self, session: ClientSession) -> List[Dict]:
        return self._request("GET", "/watchlist", session)["results"]

    def remove_entry(self, session: ClientSession, tmdb_id: int) -> None:
        self._request("DELETE", f"/watchlist/{tmdb_id}", session)

    def set_rating(self, session: ClientSession, tmdb_id: int, rating: int) -> Dict:
        return self._request("PATCH", f"/watchlist/{tmdb_id}/rating", session, json={"rating": rating})["data"]
