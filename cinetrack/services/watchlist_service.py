from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Tuple
from datetime import datetime, timezone
import logging

from cinetrack.models.watchlist import WatchlistEntry
from cinetrack.models.movie import Movie
from cinetrack.schemas.watchlist import WatchlistCategory
from cinetrack.services.catalog_cache_service import CatalogCacheService
from cinetrack.utils.exceptions import NotCachedError, NotFoundError

logger = logging.getLogger(__name__)


class WatchlistService:
    """
    Watchlist store and sync protocol.

    Entries are keyed by (user_id, tmdb_id) from the caller's point of view;
    internally they reference movies.id, so the movie must be cached first.
    """

    @staticmethod
    def _resolve_movie(db: Session, tmdb_id: int) -> Movie:
        movie = CatalogCacheService.get_cached(db, tmdb_id)
        if movie is None:
            raise NotCachedError(tmdb_id)
        return movie

    @staticmethod
    def _find_entry(db: Session, user_id: str, movie_id: int) -> Optional[WatchlistEntry]:
        return db.query(WatchlistEntry).options(joinedload(WatchlistEntry.movie)).filter(
            WatchlistEntry.user_id == user_id,
            WatchlistEntry.movie_id == movie_id
        ).first()

    @staticmethod
    def _overwrite(entry: WatchlistEntry, category: WatchlistCategory, rating: Optional[int]) -> None:
        entry.category = WatchlistCategory(category).value
        entry.user_rating = rating
        entry.updated_at = datetime.now(timezone.utc)

    @staticmethod
    def get_entry(db: Session, user_id: str, tmdb_id: int) -> Optional[WatchlistEntry]:
        """Point lookup by (user_id, tmdb_id); None if the movie or entry is absent"""
        movie = CatalogCacheService.get_cached(db, tmdb_id)
        if movie is None:
            return None
        return WatchlistService._find_entry(db, user_id, movie.id)

    @staticmethod
    def list_entries(db: Session, user_id: str) -> List[WatchlistEntry]:
        """All entries of a user, most recently changed first"""
        return db.query(WatchlistEntry).options(joinedload(WatchlistEntry.movie)).filter(
            WatchlistEntry.user_id == user_id
        ).order_by(WatchlistEntry.updated_at.desc()).all()

    @staticmethod
    def upsert_entry(
        db: Session,
        user_id: str,
        tmdb_id: int,
        category: WatchlistCategory = WatchlistCategory.WANT_TO_WATCH,
        rating: Optional[int] = None
    ) -> Tuple[WatchlistEntry, bool]:
        """
        Create or update the entry for (user_id, tmdb_id).

        Idempotent: repeated calls converge on one row. Category is overwritten
        unconditionally; forward-only movement is the client's job.

        Returns:
            (entry, created) - created is False when an existing row was updated

        Raises:
            NotCachedError: the movie is not in the catalog cache yet
        """
        movie = WatchlistService._resolve_movie(db, tmdb_id)

        existing = WatchlistService._find_entry(db, user_id, movie.id)
        if existing:
            WatchlistService._overwrite(existing, category, rating)
            db.commit()
            db.refresh(existing)
            logger.info(f"Watchlist entry updated: user={user_id} tmdb_id={tmdb_id} category={existing.category}")
            return existing, False

        entry = WatchlistEntry(
            user_id=user_id,
            movie_id=movie.id,
            category=WatchlistCategory(category).value,
            user_rating=rating
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the same (user, movie) first; update theirs
            db.rollback()
            winner = WatchlistService._find_entry(db, user_id, movie.id)
            if winner is None:
                raise
            WatchlistService._overwrite(winner, category, rating)
            db.commit()
            db.refresh(winner)
            logger.info(f"Watchlist insert lost a race, updated existing entry: user={user_id} tmdb_id={tmdb_id}")
            return winner, False

        db.refresh(entry)
        logger.info(f"Watchlist entry created: user={user_id} tmdb_id={tmdb_id} category={entry.category}")
        return entry, True

    @staticmethod
    def _get_existing(db: Session, user_id: str, tmdb_id: int) -> WatchlistEntry:
        movie = CatalogCacheService.get_cached(db, tmdb_id)
        if movie is None:
            raise NotFoundError("Movie not found")

        entry = WatchlistService._find_entry(db, user_id, movie.id)
        if entry is None:
            raise NotFoundError("Watchlist entry not found")
        return entry

    @staticmethod
    def remove_entry(db: Session, user_id: str, tmdb_id: int) -> None:
        """Delete the entry for (user_id, tmdb_id)"""
        entry = WatchlistService._get_existing(db, user_id, tmdb_id)
        db.delete(entry)
        db.commit()
        logger.info(f"Watchlist entry removed: user={user_id} tmdb_id={tmdb_id}")

    @staticmethod
    def set_rating(db: Session, user_id: str, tmdb_id: int, rating: int) -> WatchlistEntry:
        """Update only the rating of an existing entry"""
        entry = WatchlistService._get_existing(db, user_id, tmdb_id)
        entry.user_rating = rating
        entry.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(entry)
        return entry
