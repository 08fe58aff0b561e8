"""
Admin Routes for cache and background job management

All endpoints require authentication via get_current_user_id dependency
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from cinetrack.database import get_db
from cinetrack.utils.dependencies import get_current_user_id
from cinetrack.utils.cache import get_cache_stats
from cinetrack.services.background_jobs import background_jobs
from cinetrack.services.catalog_cache_service import CatalogCacheService
from datetime import datetime, timezone

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/jobs")
def get_jobs_status(current_user_id: str = Depends(get_current_user_id)):
    """Scheduler state, next run times and last results"""
    return background_jobs.get_job_stats()


@router.post("/jobs/warm-trending")
def trigger_trending_warmup(current_user_id: str = Depends(get_current_user_id)):
    """
    Manually run the trending cache warm-up

    - Fetches trending movies (day and week) from TMDB
    - Upserts them into the catalog cache
    """
    cached = background_jobs.warm_trending_cache()
    stats = background_jobs.job_stats['warm_trending']
    return {
        "job": "warm_trending",
        "status": stats['status'],
        "cached": cached,
        "error": stats['error'],
        "triggered_at": datetime.now(timezone.utc).isoformat(),
        "triggered_by": current_user_id
    }


@router.get("/cache-stats")
def cache_stats(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Catalog cache size plus in-process upstream cache hit rate"""
    return {
        "catalog_rows": CatalogCacheService.count(db),
        "upstream_cache": get_cache_stats()
    }
