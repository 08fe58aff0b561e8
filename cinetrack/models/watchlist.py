from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from typing import Optional
import uuid
from cinetrack.database import Base


def _new_entry_id() -> str:
    return str(uuid.uuid4())


class WatchlistEntry(Base):
    """
    One user's tracked relationship to a cached movie.
    user_id is the subject issued by the external auth provider.
    """
    __tablename__ = "watchlist"

    id = Column(String(36), primary_key=True, default=_new_entry_id)
    user_id = Column(String(64), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(20), nullable=False, default="want-to-watch")
    user_rating = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    movie = relationship("Movie")

    # One entry per user per movie
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="unique_user_movie_watchlist"),
    )

    @property
    def tmdb_id(self) -> Optional[int]:
        """Get TMDB ID from related movie"""
        return self.movie.tmdb_id if self.movie else None

    def __repr__(self):
        return f"<WatchlistEntry(user_id={self.user_id}, movie_id={self.movie_id}, category={self.category})>"
