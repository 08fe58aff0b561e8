import requests
import os
from dotenv import load_dotenv
from typing import Dict, Optional
from cinetrack.utils.cache import cache
from cinetrack.utils.exceptions import UpstreamUnavailableError
import logging

load_dotenv()
logger = logging.getLogger(__name__)


# TMDB Service to interact with The Movie Database API
class TMDBService:
    BASE_URL = "https://api.themoviedb.org/3"
    API_KEY = os.getenv("TMDB_API_KEY")
    TIMEOUT = 10

    @classmethod
    def _auth(cls) -> tuple:
        """
        Build auth for the configured key.

        v4 read access tokens are JWTs (they start with "ey") and go in the
        Authorization header; v3 keys go in the api_key query parameter.

        Returns:
            (headers, params) to merge into the request
        """
        if cls.API_KEY.startswith("ey"):
            return {"Authorization": f"Bearer {cls.API_KEY}"}, {}
        return {}, {"api_key": cls.API_KEY}

    # Internal method to make GET requests to TMDB API
    @classmethod
    def _make_request(cls, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        Make HTTP request to TMDB API.

        Args:
            endpoint: API endpoint (e.g., "/movie/popular")
            params: Query parameters

        Returns:
            JSON response from TMDB

        Raises:
            UpstreamUnavailableError: If API key is missing or request fails.
                Carries the upstream status when TMDB answered.
        """
        if not cls.API_KEY:
            raise UpstreamUnavailableError("TMDB API key not configured")

        headers, auth_params = cls._auth()
        params = {**(params or {}), **auth_params}
        url = f"{cls.BASE_URL}{endpoint}"

        try:
            response = requests.get(url, params=params, headers=headers, timeout=cls.TIMEOUT)
            response.raise_for_status()
            logger.debug(f"TMDB API request successful: {endpoint}")
            return response.json()
        except requests.exceptions.HTTPError as e:
            upstream_status = e.response.status_code if e.response is not None else None
            logger.error(f"TMDB API error for {endpoint}: {upstream_status}")
            raise UpstreamUnavailableError(f"TMDB API error: {upstream_status}", upstream_status)
        except requests.exceptions.RequestException as e:
            logger.error(f"TMDB API unreachable for {endpoint}: {str(e)}")
            raise UpstreamUnavailableError(f"TMDB API unreachable: {str(e)}")

    # Public methods to access various TMDB endpoints
    @classmethod
    def search_movies(cls, query: str, page: int = 1) -> Dict:
        """Plain keyword search."""
        return cls._make_request("/search/movie", {"query": query, "page": page, "include_adult": "false"})

    @classmethod
    def discover_movies(cls, params: Dict) -> Dict:
        """
        Discover movies with server-side filters.
        Supports: with_genres, primary_release_year, vote_average.gte, etc.
        """
        return cls._make_request("/discover/movie", {"include_adult": "false", **params})

    @classmethod
    def get_movie_details(cls, movie_id: int, include_recommendations: bool = False) -> Dict:
        """
        Get the full movie document with credits, videos and release dates.
        Not memoized in-process: freshness is tracked in the movies table.
        """
        append = ["credits", "videos", "release_dates"]
        if include_recommendations:
            append.insert(2, "recommendations")
        return cls._make_request(f"/movie/{movie_id}", {"append_to_response": ",".join(append)})

    @classmethod
    @cache(ttl=300)  # Cache trending for 5 minutes
    def get_trending(cls, time_window: str = "week", page: int = 1) -> Dict:
        """Get trending movies for 'day' or 'week'."""
        return cls._make_request(f"/trending/movie/{time_window}", {"language": "en-US", "page": page})

    @classmethod
    @cache(ttl=300)  # Cache popular for 5 minutes
    def get_popular(cls, page: int = 1) -> Dict:
        """Get popular movies."""
        return cls._make_request("/movie/popular", {"language": "en-US", "page": page})

    @classmethod
    @cache(ttl=3600)  # Video lists rarely change
    def get_movie_videos(cls, movie_id: int) -> Dict:
        """Get trailers, teasers and clips for a movie."""
        return cls._make_request(f"/movie/{movie_id}/videos")
