"""
Recommendation blurb - a short personalized pitch for one cached movie.

The text comes from an OpenAI chat completion seeded with the movie and the
user's most recent watchlist titles. Any failure of that call degrades to a
fixed sentence; the endpoint never fails because of the LLM.
"""
from sqlalchemy.orm import Session
from typing import Dict, List
from dotenv import load_dotenv
import requests
import os
import logging

from cinetrack.models.movie import Movie
from cinetrack.services.catalog_cache_service import CatalogCacheService
from cinetrack.services.watchlist_service import WatchlistService
from cinetrack.utils.exceptions import NotFoundError

load_dotenv()
logger = logging.getLogger(__name__)

FALLBACK_BLURB = "This movie looks like it could be a great watch based on your taste!"
EMPTY_ANSWER_BLURB = "This movie looks like a great addition to your watchlist!"

RECENT_TITLES = 5
OVERVIEW_EXCERPT = 150

SYSTEM_PROMPT = (
    "You are a friendly movie recommendation assistant. "
    "Keep responses short, enthusiastic, and personalized."
)


def build_prompt(movie: Movie, recent_titles: List[str]) -> str:
    overview = (movie.overview or "")[:OVERVIEW_EXCERPT]
    return (
        f'Based on this movie: "{movie.title}" ({overview}...) and user\'s recent preferences: '
        f"[{', '.join(recent_titles)}], write a short, friendly 2-sentence blurb about why they "
        f"might enjoy this movie. Keep it conversational and enthusiastic."
    )


class RecommendationService:
    """Service for LLM-written recommendation blurbs"""

    API_URL = "https://api.openai.com/v1/chat/completions"
    API_KEY = os.getenv("OPENAI_API_KEY")
    MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    TIMEOUT = 15

    @classmethod
    def _complete(cls, prompt: str) -> str:
        """
        One chat completion.

        Raises:
            requests.exceptions.RequestException: transport or non-2xx answer
            ValueError: missing API key or unparseable body
        """
        if not cls.API_KEY:
            raise ValueError("OpenAI API key not configured")

        payload: Dict = {
            "model": cls.MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 100,
            "temperature": 0.7,
        }
        response = requests.post(
            cls.API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {cls.API_KEY}"},
            timeout=cls.TIMEOUT,
        )
        response.raise_for_status()

        choices = response.json().get("choices") or []
        if not choices:
            return ""
        return ((choices[0].get("message") or {}).get("content") or "").strip()

    @classmethod
    def get_blurb(cls, db: Session, user_id: str, tmdb_id: int) -> str:
        """
        Blurb for ``tmdb_id`` tailored to ``user_id``'s recent watchlist.

        Raises:
            NotFoundError: the movie is not in the catalog cache
        """
        movie = CatalogCacheService.get_cached(db, tmdb_id)
        if movie is None:
            raise NotFoundError("Movie not found")

        recent = WatchlistService.list_entries(db, user_id)[:RECENT_TITLES]
        recent_titles = [entry.movie.title for entry in recent if entry.movie and entry.movie.title]

        try:
            return cls._complete(build_prompt(movie, recent_titles)) or EMPTY_ANSWER_BLURB
        except (requests.exceptions.RequestException, ValueError, AttributeError) as e:
            logger.warning(f"Recommendation blurb for tmdb_id={tmdb_id} fell back: {str(e)}")
            return FALLBACK_BLURB
