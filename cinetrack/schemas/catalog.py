"""
Catalog search and discovery schemas
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Set
from enum import Enum


class TimeWindow(str, Enum):
    """Time window for trending movies"""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# ============================================
# Search filters
# ============================================

class SearchFilters(BaseModel):
    """
    Optional filters for /movies search.
    Field aliases match the TMDB discover parameter names the frontend sends.
    """
    model_config = ConfigDict(populate_by_name=True)

    with_genres: Optional[str] = Field(
        None,
        description="Genre IDs (comma-separated, e.g., '28,12')",
        json_schema_extra={"example": "878"}
    )
    primary_release_year: Optional[int] = Field(None, ge=1870, le=2100)
    min_rating: Optional[float] = Field(None, alias="vote_average.gte", ge=0, le=10)
    language: Optional[str] = Field(None, alias="with_original_language", max_length=5)

    def is_empty(self) -> bool:
        return not (self.with_genres or self.primary_release_year or self.min_rating is not None or self.language)

    def genre_ids(self) -> Set[int]:
        return {int(g.strip()) for g in (self.with_genres or "").split(",") if g.strip().isdigit()}

    def to_tmdb_params(self) -> dict:
        """Convert to TMDB discover parameters (only the filters that are set)"""
        params = {}
        if self.with_genres:
            params["with_genres"] = self.with_genres
        if self.primary_release_year:
            params["primary_release_year"] = self.primary_release_year
        if self.min_rating is not None:
            params["vote_average.gte"] = self.min_rating
        if self.language:
            params["with_original_language"] = self.language
        return params

    def matches(self, movie: dict) -> bool:
        """Client-side predicate used when discover returns nothing"""
        required_genres = self.genre_ids()
        if required_genres and not required_genres.intersection(movie.get("genre_ids") or []):
            return False

        if self.primary_release_year:
            release_date = movie.get("release_date") or ""
            if not release_date[:4].isdigit() or int(release_date[:4]) != self.primary_release_year:
                return False

        if self.min_rating is not None and (movie.get("vote_average") or 0.0) < self.min_rating:
            return False

        if self.language and movie.get("original_language") != self.language:
            return False

        return True


# ============================================
# Response Schemas
# ============================================

class MovieListResponse(BaseModel):
    """Standard response for movie list endpoints"""
    page: int
    total_pages: int
    total_results: int
    results: List[dict]


class MovieDetailResponse(BaseModel):
    movie: dict


class TrailerResponse(BaseModel):
    videoKey: Optional[str]
