"""
Catalog Proxy - search, details, trending and trailer lookups.

Reads come from the movies table when fresh and from TMDB otherwise. Every
upstream answer is written back to the cache, but a failed cache write is
logged and never fails the read.
"""
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import date, timedelta
import logging

from cinetrack.schemas.catalog import SearchFilters, TimeWindow
from cinetrack.services.tmdb_service import TMDBService
from cinetrack.services.catalog_cache_service import CatalogCacheService

logger = logging.getLogger(__name__)

CAST_LIMIT = 10
RECENT_RELEASE_DAYS = 30


def _empty_page(page: int) -> Dict:
    return {"results": [], "total_pages": 0, "total_results": 0, "page": page}


def normalize_cast(document: Dict) -> List[Dict]:
    """Top-billed cast from the appended credits, ordered by TMDB 'order'"""
    cast = (document.get("credits") or {}).get("cast") or []
    ordered = sorted(cast, key=lambda actor: actor.get("order", len(cast)))
    return [
        {
            "id": actor.get("id"),
            "name": actor.get("name"),
            "character": actor.get("character"),
            "profile_path": actor.get("profile_path"),
            "order": actor.get("order"),
        }
        for actor in ordered[:CAST_LIMIT]
    ]


def pick_trailer(videos: List[Dict]) -> Optional[Dict]:
    """Official YouTube trailer if there is one, else the first YouTube trailer"""
    trailers = [v for v in videos if v.get("site") == "YouTube" and v.get("type") == "Trailer"]
    for video in trailers:
        if video.get("official"):
            return video
    return trailers[0] if trailers else None


class CatalogService:
    """Service for catalog proxy operations"""

    @staticmethod
    def search(db: Session, query: str, page: int = 1, filters: Optional[SearchFilters] = None) -> Dict:
        """
        Keyword search with optional filters.

        With filters, TMDB discover applies them server-side. If discover comes
        back empty, fall back to keyword search and filter locally.
        """
        if not query:
            return _empty_page(page)

        filters = filters or SearchFilters()

        if filters.is_empty():
            first = TMDBService.search_movies(query, page)
            results = first.get("results") or []
        else:
            discover_params = {**filters.to_tmdb_params(), "page": page, "with_keywords": query}
            first = TMDBService.discover_movies(discover_params)
            results = first.get("results") or []

            if not results:
                logger.info(f"Discover returned no results for '{query}', falling back to search + local filtering")
                fallback = TMDBService.search_movies(query, page)
                results = [movie for movie in fallback.get("results") or [] if filters.matches(movie)]

        CatalogCacheService.upsert_many(db, results)

        logger.info(f"Search '{query}' page {page}: {len(results)} results")
        return {
            "results": results,
            "total_pages": first.get("total_pages") or 1,
            "total_results": len(results),
            "page": first.get("page") or page,
        }

    @staticmethod
    def get_details(db: Session, tmdb_id: int, include_recommendations: bool = False) -> Dict:
        """
        Full movie document, served from cache when fresh.

        A cached row only counts as a hit if it holds a detail document (search
        and trending ingest summaries without credits), and, when
        recommendations are requested, the document already carries them.
        """
        cached = CatalogCacheService.get_cached(db, tmdb_id)
        if cached is not None and CatalogCacheService.is_fresh(cached):
            document = cached.tmdb_json or {}
            has_details = "credits" in document
            has_recommendations = "recommendations" in document
            if has_details and (has_recommendations or not include_recommendations):
                logger.debug(f"Catalog cache hit for tmdb_id={tmdb_id}")
                return document

        logger.info(f"Fetching details for tmdb_id={tmdb_id} from TMDB")
        document = TMDBService.get_movie_details(tmdb_id, include_recommendations)
        if document.get("credits"):
            document["cast"] = normalize_cast(document)

        CatalogCacheService.upsert_quietly(db, document)
        return document

    @staticmethod
    def get_trending(db: Session, time_window: TimeWindow = TimeWindow.WEEK, page: int = 1) -> Dict:
        """
        Trending movies. 'month' is popular movies released in the last 30
        days, most popular first.
        """
        if time_window == TimeWindow.MONTH:
            data = TMDBService.get_popular(page)
            cutoff = date.today() - timedelta(days=RECENT_RELEASE_DAYS)
            results = [
                movie for movie in data.get("results") or []
                if (movie.get("release_date") or "") >= cutoff.isoformat()
            ]
            results = sorted(results, key=lambda movie: movie.get("popularity") or 0, reverse=True)
        else:
            data = TMDBService.get_trending(time_window.value, page)
            results = list(data.get("results") or [])

        CatalogCacheService.upsert_many(db, results)

        return {
            "results": results,
            "total_pages": data.get("total_pages") or 1,
            "total_results": data.get("total_results") or len(results),
            "page": data.get("page") or page,
        }

    @staticmethod
    def get_trailer_key(tmdb_id: int) -> Optional[str]:
        """YouTube key of the movie's trailer, or None"""
        data = TMDBService.get_movie_videos(tmdb_id)
        trailer = pick_trailer(data.get("results") or [])
        return trailer.get("key") if trailer else None
