"""
Python client: HTTP wrapper plus the optimistic watchlist mirror
"""
from .api import CineTrackAPI, CineTrackAPIError, ClientSession, MovieNotCachedError, SessionExpiredError
from .watchlist import MirrorEntry, OptimisticWatchlist, SyncState, next_categories

__all__ = [
    "CineTrackAPI",
    "CineTrackAPIError",
    "ClientSession",
    "MovieNotCachedError",
    "SessionExpiredError",
    "MirrorEntry",
    "OptimisticWatchlist",
    "SyncState",
    "next_categories",
]
