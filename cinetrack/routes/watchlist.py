from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cinetrack.database import get_db
from cinetrack.utils.dependencies import get_current_user_id
from cinetrack.utils.exceptions import ForbiddenError
from cinetrack.schemas.watchlist import (
    WatchlistUpsert,
    RatingUpdate,
    WatchlistEntryResponse,
    WatchlistEntryWithMovie,
)
from cinetrack.services.watchlist_service import WatchlistService

router = APIRouter(tags=["Watchlist"])


def _serialize(entry) -> dict:
    return WatchlistEntryResponse.model_validate(entry).model_dump(mode="json")


# ==================== SYNC RPC ====================

@router.post("/watchlist-rpc")
def upsert_watchlist_entry(
    payload: WatchlistUpsert,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Idempotent create-or-update of a watchlist entry

    - **user_id**: owner (must be the authenticated user)
    - **tmdb_id**: TMDB movie ID; 404 "Movie not cached" until the movie has
      been fetched through /movies?id=
    - **category**: want-to-watch (default), watching or watched
    - **rating**: 1-5 or null
    """
    if not payload.user_id or not payload.tmdb_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing user_id or tmdb_id")
    if payload.user_id != current_user_id:
        raise ForbiddenError()

    entry, created = WatchlistService.upsert_entry(
        db, payload.user_id, payload.tmdb_id, payload.category, payload.rating
    )
    flag = "created" if created else "updated"
    return {"success": True, flag: True, "data": _serialize(entry)}


# ==================== STORE ENDPOINTS ====================

@router.get("/watchlist")
def get_watchlist(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Authoritative watchlist of the signed-in user, most recently changed first"""
    entries = WatchlistService.list_entries(db, current_user_id)
    return {
        "results": [
            WatchlistEntryWithMovie.model_validate(entry).model_dump(mode="json") for entry in entries
        ]
    }


@router.delete("/watchlist/{tmdb_id}")
def remove_watchlist_entry(
    tmdb_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Remove a movie from the signed-in user's watchlist"""
    WatchlistService.remove_entry(db, current_user_id, tmdb_id)
    return {"success": True}


@router.patch("/watchlist/{tmdb_id}/rating")
def set_watchlist_rating(
    tmdb_id: int,
    payload: RatingUpdate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Rate a movie already on the watchlist (1-5)"""
    entry = WatchlistService.set_rating(db, current_user_id, tmdb_id, payload.rating)
    return {"success": True, "data": _serialize(entry)}
