from fastapi import APIRouter, Query, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional

from cinetrack.database import get_db
from cinetrack.schemas.catalog import SearchFilters, TimeWindow, MovieListResponse
from cinetrack.schemas.validation import SearchQuerySchema
from cinetrack.services.catalog_service import CatalogService

router = APIRouter(tags=["Catalog"])


# ============================================
# Search & Details
# ============================================

@router.get("/movies")
def movies(
    q: Optional[str] = Query(None, max_length=500, description="Search query"),
    id: Optional[int] = Query(None, description="TMDB movie ID (details mode)"),
    details: bool = Query(False, description="Include recommendations in details"),
    page: int = Query(1, ge=1, le=500, description="Page number"),
    with_genres: Optional[str] = Query(None, description="Genre IDs (comma-separated)"),
    primary_release_year: Optional[int] = Query(None, description="Exact release year"),
    min_rating: Optional[float] = Query(None, alias="vote_average.gte", description="Minimum rating"),
    language: Optional[str] = Query(None, alias="with_original_language", description="Language code (e.g., 'en')"),
    db: Session = Depends(get_db)
):
    """
    Search the catalog, or fetch one movie's details when **id** is given.

    - **id** + **details**: full document (cast, videos, release dates,
      recommendations when details=true), cached for 24 hours
    - **q** + filters: keyword search; filters go to TMDB discover with a
      local-filtering fallback
    """
    if id is not None:
        return {"movie": CatalogService.get_details(db, id, include_recommendations=details)}

    if not q:
        return {"results": [], "total_pages": 0, "total_results": 0, "page": page}

    try:
        search_query = SearchQuerySchema(query=q)
        filters = SearchFilters(
            with_genres=with_genres,
            primary_release_year=primary_release_year,
            min_rating=min_rating,
            language=language,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors()[0]["msg"])

    return CatalogService.search(db, search_query.query, page, filters)


# ============================================
# Trending
# ============================================

@router.get("/trending", response_model=MovieListResponse)
def trending(
    time_window: TimeWindow = Query(TimeWindow.WEEK, description="day, week or month"),
    page: int = Query(1, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """Trending movies; 'month' is recent popular releases"""
    return CatalogService.get_trending(db, time_window, page)


# ============================================
# Trailer
# ============================================

@router.get("/trailer")
def trailer(id: Optional[int] = Query(None, description="TMDB movie ID")):
    """YouTube key of the movie's trailer"""
    if id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Movie ID is required")

    video_key = CatalogService.get_trailer_key(id)
    if video_key is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "No trailer found", "videoKey": None}
        )
    return {"videoKey": video_key}
