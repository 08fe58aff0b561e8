"""
Catalog cache model - one row per TMDB movie.

Rows are written by the catalog proxy (details, search and trending
ingestion) and referenced by watchlist entries. They are never deleted;
freshness is decided at read time from ``cached_at``.
"""
from sqlalchemy import Column, Integer, String, Float, JSON, Date, DateTime, Text
from sqlalchemy.sql import func
from cinetrack.database import Base


class Movie(Base):
    """
    Cached TMDB movie

    Attributes:
        id: Internal primary key (referenced by watchlist entries)
        tmdb_id: TMDB movie ID (unique cache key)
        genres: Genre names from the detail document (empty for summaries)
        tmdb_json: Upstream document preserved verbatim
        cached_at: When the row was last written from upstream
    """
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)

    # Promoted fields
    title = Column(String(500))
    overview = Column(Text)
    poster_path = Column(String(200))
    backdrop_path = Column(String(200))
    release_date = Column(Date, nullable=True)
    runtime = Column(Integer, nullable=True)
    genres = Column(JSON, default=list)

    # Metrics
    vote_average = Column(Float, default=0.0)
    vote_count = Column(Integer, default=0)

    # Opaque upstream payload
    tmdb_json = Column(JSON)

    cached_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Movie(tmdb_id={self.tmdb_id}, title='{self.title}')>"
