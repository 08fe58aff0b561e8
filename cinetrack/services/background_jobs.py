"""
Background Jobs Service
Pre-loads trending movies into the catalog cache so watchlist adds from
the home page rarely hit the "Movie not cached" path.

Features:
- Scheduled jobs using APScheduler
- Configurable timezone
- Job monitoring and statistics
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session
from cinetrack.database import SessionLocal
from cinetrack.services.tmdb_service import TMDBService
from cinetrack.services.catalog_cache_service import CatalogCacheService
from datetime import datetime
import logging
import os
from typing import Callable, Dict
from pytz import timezone

logger = logging.getLogger(__name__)


class BackgroundJobService:
    """
    Manages scheduled cache warming

    Jobs:
    - Warm trending movies (hourly)

    Usage:
        jobs = BackgroundJobService()
        jobs.start()  # Start all scheduled jobs
        jobs.shutdown()  # Stop all jobs gracefully
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        """Initialize scheduler with timezone configuration"""
        tz_name = os.getenv("TIMEZONE", "UTC")
        self.timezone = timezone(tz_name)
        self.scheduler = BackgroundScheduler(timezone=self.timezone)
        self.session_factory = session_factory

        # Track job execution statistics
        self.job_stats = {
            'warm_trending': {'last_run': None, 'status': 'idle', 'error': None, 'cached': 0},
        }

    def start(self):
        """
        Start all scheduled background jobs

        Jobs are only started if ENABLE_BACKGROUND_JOBS=true in environment
        """
        if os.getenv("ENABLE_BACKGROUND_JOBS", "true").lower() != "true":
            logger.info("Background jobs disabled via ENABLE_BACKGROUND_JOBS environment variable")
            return

        self.scheduler.add_job(
            func=self.warm_trending_cache,
            trigger=CronTrigger(minute=0, timezone=self.timezone),  # Every hour at :00
            id='warm_trending',
            name='Warm catalog cache with trending movies',
            replace_existing=True,
            max_instances=1  # Prevent concurrent runs
        )

        self.scheduler.start()
        logger.info(f"Background jobs started (timezone: {self.timezone}, active jobs: {len(self.scheduler.get_jobs())})")

    def shutdown(self):
        """Shutdown scheduler gracefully"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Background jobs stopped gracefully")

    def get_job_stats(self) -> Dict:
        """
        Get statistics for all jobs including next run times

        Returns:
            Dict with job information and execution history
        """
        next_runs = {job.id: job.next_run_time for job in self.scheduler.get_jobs()}
        jobs_info = []
        for job_id, stats in self.job_stats.items():
            next_run = next_runs.get(job_id)
            jobs_info.append({
                'id': job_id,
                'next_run': next_run.isoformat() if next_run else None,
                **stats
            })

        return {
            'scheduler_running': self.scheduler.running,
            'timezone': str(self.timezone),
            'jobs': jobs_info
        }

    def warm_trending_cache(self) -> int:
        """
        Fetch trending movies (day and week) and upsert them into the
        catalog cache.

        Returns:
            Number of movies written
        """
        job_id = 'warm_trending'
        self.job_stats[job_id]['status'] = 'running'
        self.job_stats[job_id]['error'] = None

        db: Session = self.session_factory()
        start_time = datetime.now()
        written = 0

        try:
            logger.info(f"[{job_id}] Starting trending cache warm-up...")

            trending_day = TMDBService.get_trending('day', page=1)
            trending_week = TMDBService.get_trending('week', page=1)

            # Combine results and remove duplicates
            all_movies = (trending_day.get('results') or []) + (trending_week.get('results') or [])
            unique_movies = list({movie['id']: movie for movie in all_movies if movie.get('id')}.values())

            # upsert_many caps each batch, so feed it in slices
            for offset in range(0, len(unique_movies), 20):
                written += CatalogCacheService.upsert_many(db, unique_movies[offset:offset + 20])

            elapsed = (datetime.now() - start_time).total_seconds()
            logger.info(f"[{job_id}] Completed in {elapsed:.2f}s - cached {written} movies")

            self.job_stats[job_id]['status'] = 'success'
            self.job_stats[job_id]['cached'] = written

        except Exception as e:
            # Scheduler threads have no caller to report to
            logger.error(f"[{job_id}] Failed: {str(e)}", exc_info=True)
            self.job_stats[job_id]['status'] = 'failed'
            self.job_stats[job_id]['error'] = str(e)

        finally:
            self.job_stats[job_id]['last_run'] = datetime.now().isoformat()
            db.close()

        return written


# Global instance
background_jobs = BackgroundJobService()
