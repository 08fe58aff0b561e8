"""
Client-side optimistic mirror of a user's watchlist.

Every mutation patches the mirror before the network call and marks the
entry as pending. A successful answer confirms the entry; any failure
reloads the authoritative list from the server instead of undoing the patch
locally. Per-movie mutations are not serialized, so overlapping calls can
interleave.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

from cinetrack.client.api import (
    CineTrackAPI,
    CineTrackAPIError,
    ClientSession,
    MovieNotCachedError,
    SessionExpiredError,
)
from cinetrack.schemas.watchlist import WatchlistCategory

logger = logging.getLogger(__name__)

# Forward-only movement; watched is the end of the flow
NEXT_CATEGORY = {
    WatchlistCategory.WANT_TO_WATCH: [WatchlistCategory.WATCHING],
    WatchlistCategory.WATCHING: [WatchlistCategory.WATCHED],
    WatchlistCategory.WATCHED: [],
}

TRANSITION_MESSAGES = {
    WatchlistCategory.WATCHING: "Moved to Currently Watching",
    WatchlistCategory.WATCHED: "Marked as Watched",
}

SIGN_IN_PROMPT = "Sign in to add movies to your watchlist"
LOGIN_REQUIRED = "You must be logged in."


def next_categories(category) -> List[WatchlistCategory]:
    """Categories the UI may offer from ``category``"""
    return list(NEXT_CATEGORY[WatchlistCategory(category)])


class SyncState(str, Enum):
    CONFIRMED = "confirmed"
    PENDING_CREATE = "pending-create"
    PENDING_UPDATE = "pending-update"
    PENDING_DELETE = "pending-delete"


@dataclass
class MirrorEntry:
    tmdb_id: int
    category: WatchlistCategory
    user_rating: Optional[int] = None
    state: SyncState = SyncState.CONFIRMED
    id: Optional[str] = None
    movie: Dict = field(default_factory=dict)


def _log_notifier(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class OptimisticWatchlist:
    """
    In-memory watchlist for one signed-in user.

    ``notify(level, message)`` receives every user-facing outcome, with level
    one of "success", "info" or "error".
    """

    def __init__(self, api: CineTrackAPI, notify: Callable[[str, str], None] = _log_notifier):
        self.api = api
        self.notify = notify
        self.session: Optional[ClientSession] = None
        self._entries: List[MirrorEntry] = []

    # ==================== SESSION ====================

    def sign_in(self, session: ClientSession) -> None:
        # Never carry another user's rows over
        self._entries = []
        self.session = session
        self.reload()

    def sign_out(self) -> None:
        """Drop the session and the whole mirror (also used on session loss)"""
        self._entries = []
        self.session = None

    # ==================== READS ====================

    @property
    def entries(self) -> List[MirrorEntry]:
        """Visible entries (pending deletes are already gone from the UI)"""
        return [replace(e) for e in self._entries if e.state != SyncState.PENDING_DELETE]

    def get(self, tmdb_id: int) -> Optional[MirrorEntry]:
        for entry in self._entries:
            if entry.tmdb_id == tmdb_id and entry.state != SyncState.PENDING_DELETE:
                return entry
        return None

    def contains(self, tmdb_id: int) -> bool:
        return self.get(tmdb_id) is not None

    def get_category(self, tmdb_id: int) -> Optional[WatchlistCategory]:
        entry = self.get(tmdb_id)
        return entry.category if entry else None

    def get_rating(self, tmdb_id: int) -> Optional[int]:
        entry = self.get(tmdb_id)
        return entry.user_rating if entry else None

    # ==================== RECONCILIATION ====================

    def reload(self) -> bool:
        """
        Replace the mirror with the server's list.
        On failure the mirror is cleared rather than left stale.
        """
        if self.session is None:
            self._entries = []
            return False

        try:
            rows = self.api.list_entries(self.session)
        except SessionExpiredError:
            self._session_lost(SIGN_IN_PROMPT)
            return False
        except CineTrackAPIError as e:
            logger.error(f"Loading watchlist failed: {e.message}")
            self._entries = []
            return False

        self._entries = [
            MirrorEntry(
                tmdb_id=row["tmdb_id"],
                category=WatchlistCategory(row["category"]),
                user_rating=row.get("user_rating"),
                id=row["id"],
                movie=row.get("movie") or {},
            )
            for row in rows
        ]
        return True

    def _confirm(self, tmdb_id: int, data: Dict) -> Optional[MirrorEntry]:
        entry = self.get(tmdb_id)
        if entry is None:
            # A reload from an interleaved failure already replaced the mirror
            return None
        entry.id = data["id"]
        entry.category = WatchlistCategory(data["category"])
        entry.user_rating = data.get("user_rating")
        entry.state = SyncState.CONFIRMED
        return entry

    def _upsert_with_cache_fill(self, tmdb_id: int, category: WatchlistCategory, rating: Optional[int]):
        """Upsert; on "Movie not cached" fetch the movie once and retry once"""
        try:
            return self.api.upsert_entry(self.session, tmdb_id, category.value, rating)
        except MovieNotCachedError:
            logger.info(f"tmdb_id={tmdb_id} not cached, fetching details before retrying")
            self.api.get_details(tmdb_id)
            return self.api.upsert_entry(self.session, tmdb_id, category.value, rating)

    def _require_session(self, prompt: str) -> bool:
        if self.session is None:
            self.notify("info", prompt)
            return False
        return True

    def _session_lost(self, prompt: str) -> None:
        """Token expired or was rejected: same outcome as signing out"""
        logger.info("Session rejected by the server, signing out")
        self.sign_out()
        self.notify("info", prompt)

    # ==================== MUTATIONS ====================

    def add(self, tmdb_id: int, movie: Optional[Dict] = None) -> Optional[MirrorEntry]:
        """Add a movie as want-to-watch"""
        if not self._require_session(SIGN_IN_PROMPT):
            return None

        if self.contains(tmdb_id):
            self.notify("info", "Movie is already in your watchlist")
            return self.get(tmdb_id)

        self._entries.append(MirrorEntry(
            tmdb_id=tmdb_id,
            category=WatchlistCategory.WANT_TO_WATCH,
            state=SyncState.PENDING_CREATE,
            movie=movie or {},
        ))

        try:
            data, created = self._upsert_with_cache_fill(tmdb_id, WatchlistCategory.WANT_TO_WATCH, None)
        except SessionExpiredError:
            self._session_lost(SIGN_IN_PROMPT)
            return None
        except CineTrackAPIError as e:
            logger.warning(f"Adding tmdb_id={tmdb_id} failed: {e.message}")
            self.reload()
            self.notify("error", "Failed to add to watchlist")
            return None

        self.notify("success", "Added to your watchlist" if created else "Watchlist updated")
        return self._confirm(tmdb_id, data)

    def remove(self, tmdb_id: int) -> bool:
        if not self._require_session(LOGIN_REQUIRED):
            return False

        entry = self.get(tmdb_id)
        if entry is None:
            self.notify("error", "Movie is not in your watchlist")
            return False

        entry.state = SyncState.PENDING_DELETE
        try:
            self.api.remove_entry(self.session, tmdb_id)
        except SessionExpiredError:
            self._session_lost(LOGIN_REQUIRED)
            return False
        except CineTrackAPIError as e:
            logger.warning(f"Removing tmdb_id={tmdb_id} failed: {e.message}")
            self.reload()
            self.notify("error", "Failed to remove from watchlist")
            return False

        self._entries = [e for e in self._entries if e is not entry]
        self.notify("success", "Removed from watchlist")
        return True

    def set_category(self, tmdb_id: int, category) -> bool:
        """Move an entry forward (want-to-watch -> watching -> watched)"""
        if not self._require_session(LOGIN_REQUIRED):
            return False

        category = WatchlistCategory(category)
        entry = self.get(tmdb_id)
        if entry is None:
            self.notify("error", "Movie is not in your watchlist")
            return False
        if category not in next_categories(entry.category):
            self.notify("error", f"Cannot move from {entry.category.value} to {category.value}")
            return False

        entry.category = category
        entry.state = SyncState.PENDING_UPDATE
        try:
            data, _ = self._upsert_with_cache_fill(tmdb_id, category, entry.user_rating)
        except SessionExpiredError:
            self._session_lost(LOGIN_REQUIRED)
            return False
        except CineTrackAPIError as e:
            logger.warning(f"Moving tmdb_id={tmdb_id} to {category.value} failed: {e.message}")
            self.reload()
            self.notify("error", "Failed to move movie. Please try again.")
            return False

        self._confirm(tmdb_id, data)
        self.notify("success", TRANSITION_MESSAGES[category])
        return True

    def set_rating(self, tmdb_id: int, rating: int) -> bool:
        if not self._require_session(LOGIN_REQUIRED):
            return False

        entry = self.get(tmdb_id)
        if entry is None:
            self.notify("error", "Movie is not in your watchlist")
            return False

        entry.user_rating = rating
        entry.state = SyncState.PENDING_UPDATE
        try:
            data = self.api.set_rating(self.session, tmdb_id, rating)
        except SessionExpiredError:
            self._session_lost(LOGIN_REQUIRED)
            return False
        except CineTrackAPIError as e:
            logger.warning(f"Rating tmdb_id={tmdb_id} failed: {e.message}")
            self.reload()
            self.notify("error", "Failed to update rating")
            return False

        self._confirm(tmdb_id, data)
        self.notify("success", "Rating updated")
        return True
