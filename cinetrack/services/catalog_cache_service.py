"""
Catalog Cache - persistent TMDB documents keyed by tmdb_id.

The cache never evicts. Staleness is a read-time decision made by the
catalog proxy through ``is_fresh``.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Dict, Iterable, Optional
from datetime import date, datetime, timedelta, timezone
import logging

from cinetrack.models.movie import Movie

logger = logging.getLogger(__name__)

STALENESS_WINDOW = timedelta(hours=24)

# Max number of list results ingested per proxy call
MAX_INGEST = 20


def _parse_release_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we write is UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class CatalogCacheService:
    """Read/write access to the movies table"""

    @staticmethod
    def get_cached(db: Session, tmdb_id: int) -> Optional[Movie]:
        return db.query(Movie).filter(Movie.tmdb_id == tmdb_id).first()

    @staticmethod
    def is_fresh(movie: Movie, now: Optional[datetime] = None) -> bool:
        """True if the row was written from upstream within the staleness window"""
        if movie.cached_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - _as_utc(movie.cached_at) < STALENESS_WINDOW

    @staticmethod
    def _apply_document(movie: Movie, document: Dict) -> None:
        """Copy promoted fields from an upstream document onto a row"""
        movie.title = document.get("title") or ""
        movie.overview = document.get("overview") or ""
        movie.poster_path = document.get("poster_path") or ""
        movie.backdrop_path = document.get("backdrop_path") or ""
        movie.release_date = _parse_release_date(document.get("release_date"))
        movie.runtime = document.get("runtime") or None
        # Summaries only carry genre_ids; names arrive with the detail document
        movie.genres = [g["name"] for g in document.get("genres") or [] if "name" in g]
        movie.vote_average = document.get("vote_average") or 0.0
        movie.vote_count = document.get("vote_count") or 0
        movie.tmdb_json = document
        movie.cached_at = datetime.now(timezone.utc)

    @staticmethod
    def upsert(db: Session, document: Dict) -> Movie:
        """
        Insert or overwrite the row for ``document["id"]`` and reset cached_at.

        Concurrent writers racing on the same tmdb_id are last-writer-wins:
        an insert that hits the unique constraint is retried as an update.

        Raises:
            SQLAlchemyError: if the write fails (session is rolled back)
        """
        tmdb_id = document["id"]
        movie = CatalogCacheService.get_cached(db, tmdb_id)
        if movie is None:
            movie = Movie(tmdb_id=tmdb_id)
            db.add(movie)

        CatalogCacheService._apply_document(movie, document)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            movie = CatalogCacheService._overwrite_existing(db, tmdb_id, document)
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(movie)
        return movie

    @staticmethod
    def _overwrite_existing(db: Session, tmdb_id: int, document: Dict) -> Movie:
        """Second half of upsert after losing an insert race"""
        try:
            movie = CatalogCacheService.get_cached(db, tmdb_id)
            if movie is None:
                raise LookupError(f"tmdb_id={tmdb_id} vanished after insert conflict")
            CatalogCacheService._apply_document(movie, document)
            db.commit()
            return movie
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def upsert_many(db: Session, documents: Iterable[Dict]) -> int:
        """
        Opportunistically ingest list results (search, trending).
        Failures are logged and swallowed; returns the number of rows written.
        """
        written = 0
        for document in list(documents)[:MAX_INGEST]:
            if not document.get("id"):
                continue
            try:
                CatalogCacheService.upsert(db, document)
                written += 1
            except (SQLAlchemyError, LookupError) as e:
                logger.warning(f"Catalog cache write failed for tmdb_id={document.get('id')}: {str(e)}")
        return written

    @staticmethod
    def upsert_quietly(db: Session, document: Dict) -> Optional[Movie]:
        """Single-document variant of upsert_many used by the details path"""
        try:
            return CatalogCacheService.upsert(db, document)
        except (SQLAlchemyError, LookupError) as e:
            logger.warning(f"Catalog cache write failed for tmdb_id={document.get('id')}: {str(e)}")
            return None

    @staticmethod
    def count(db: Session) -> int:
        return db.query(Movie).count()
