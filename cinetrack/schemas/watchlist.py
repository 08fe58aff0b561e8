from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import date, datetime
from typing import Optional, List
from enum import Enum


class WatchlistCategory(str, Enum):
    """Lifecycle stage of a watchlist entry, in forward order"""
    WANT_TO_WATCH = "want-to-watch"
    WATCHING = "watching"
    WATCHED = "watched"


# ==================== REQUEST SCHEMAS ====================

class WatchlistUpsert(BaseModel):
    """Body of POST /watchlist-rpc"""
    user_id: Optional[str] = Field(None, description="Owner; must match the bearer token subject")
    tmdb_id: Optional[int] = Field(None, description="TMDB movie ID")
    category: Optional[WatchlistCategory] = Field(WatchlistCategory.WANT_TO_WATCH)
    rating: Optional[int] = Field(None, ge=1, le=5, description="User rating 1-5")

    @field_validator("category")
    @classmethod
    def default_category(cls, v: Optional[WatchlistCategory]) -> WatchlistCategory:
        # An explicit null means the default, same as leaving it out
        return v or WatchlistCategory.WANT_TO_WATCH


class RatingUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="User rating 1-5")


# ==================== RESPONSE SCHEMAS ====================

class WatchlistMovie(BaseModel):
    """Catalog fields shipped with each entry so the client can render it"""
    model_config = ConfigDict(from_attributes=True)

    tmdb_id: int
    title: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = None
    genres: Optional[List[str]] = None
    vote_average: float = 0.0
    vote_count: int = 0


class WatchlistEntryResponse(BaseModel):
    """Schema for watchlist entry response"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    movie_id: int  # Internal DB id
    tmdb_id: int  # TMDB movie ID for frontend
    category: WatchlistCategory
    user_rating: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class WatchlistEntryWithMovie(WatchlistEntryResponse):
    movie: Optional[WatchlistMovie] = None


class WatchlistListResponse(BaseModel):
    results: List[WatchlistEntryWithMovie]
