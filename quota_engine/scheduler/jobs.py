"""
Scheduler manager for automated jobs.

Handles:
- Nightly daily-analytics recompute of yesterday for every user
"""

import logging
from typing import Optional
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import pytz

from config import settings
from ..analytics.backfill import BackfillManager, DAILY_ANALYTICS_JOB, get_backfill_manager

logger = logging.getLogger(__name__)


class SchedulerManager:
    """
    Manages scheduled jobs for the analytics engine.
    """

    def __init__(self, backfill: Optional[BackfillManager] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = pytz.timezone(settings.timezone)
        self.backfill = backfill or get_backfill_manager()

    def start(self) -> None:
        """Start the scheduler with all jobs."""
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

        self.scheduler.add_job(
            self._daily_analytics_job,
            CronTrigger(
                hour=settings.daily_analytics_hour,
                minute=settings.daily_analytics_minute,
                timezone=self.timezone
            ),
            id=DAILY_ANALYTICS_JOB,
            name="Daily Analytics Recompute",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info(
            f"Scheduler started, daily analytics at "
            f"{settings.daily_analytics_hour:02d}:{settings.daily_analytics_minute:02d} {settings.timezone}"
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler:
            self.scheduler.shutdown()
            self.scheduler = None
            logger.info("Scheduler stopped")

    async def _daily_analytics_job(self) -> None:
        """Recompute yesterday's analytics for all users."""
        logger.info("Running daily analytics job")

        try:
            day = await self.backfill.recalculate_yesterday_for_all_users()
            logger.info(f"Daily analytics job finished for {day}")
        except Exception as e:
            logger.error(f"Error in daily analytics job: {e}", exc_info=True)

    def trigger_job(self, job_id: str) -> bool:
        """Manually trigger a job."""
        if not self.scheduler:
            return False

        job = self.scheduler.get_job(job_id)
        if job:
            job.modify(next_run_time=datetime.now(self.timezone))
            return True

        return False

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        if not self.scheduler:
            return {}

        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger)
            }

        return jobs


_scheduler_manager: Optional[SchedulerManager] = None


def get_scheduler_manager() -> SchedulerManager:
    """Get the scheduler manager instance."""
    global _scheduler_manager
    if _scheduler_manager is None:
        _scheduler_manager = SchedulerManager()
    return _scheduler_manager
