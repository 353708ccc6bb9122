"""
Backfill and consistency management for daily analytics.

Reads over a date range always return a complete series: days without a
stored summary are computed on the fly and queued for background
persistence. On boot, days missed while the process was down are replayed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional

from .daily_aggregator import DailyAggregator, DailySummary, get_daily_aggregator
from ..cache import AnalyticsCache, get_analytics_cache
from ..database.exceptions import BackfillError
from ..database.models import CronJobStatusEnum
from ..database.repositories import (
    CronJobLogRepository,
    DailyAnalyticsRepository,
    UserRepository,
    get_cron_log_repository,
    get_daily_analytics_repository,
    get_user_repository,
)
from ..utils.background_tasks import create_safe_task
from ..utils.datetime_utils import date_range, get_local_yesterday

logger = logging.getLogger(__name__)

DAILY_ANALYTICS_JOB = "daily_analytics"


@dataclass
class RangeResult:
    records: List[DailySummary] = field(default_factory=list)
    # True when some days were computed on the fly and are not stored yet
    has_gaps: bool = False
    missing_dates: List[date] = field(default_factory=list)


class BackfillManager:
    """Keeps daily_analytics complete for every day a caller asks about."""

    def __init__(
        self,
        aggregator: Optional[DailyAggregator] = None,
        daily_analytics: Optional[DailyAnalyticsRepository] = None,
        cron_log: Optional[CronJobLogRepository] = None,
        users: Optional[UserRepository] = None,
        cache: Optional[AnalyticsCache] = None,
    ):
        self.aggregator = aggregator or get_daily_aggregator()
        self.daily_analytics = daily_analytics or get_daily_analytics_repository()
        self.cron_log = cron_log or get_cron_log_repository()
        self.users = users or get_user_repository()
        self.cache = cache if cache is not None else get_analytics_cache()

    async def ensure_range(self, user_id: int, start_date: date, end_date: date) -> RangeResult:
        """
        Return a gap-free, date-ordered series for [start_date, end_date].

        Missing days are computed without being stored and a background
        recompute is scheduled for them. The caller never waits on it.
        """
        rows = await self.daily_analytics.get_range(user_id, start_date, end_date)
        by_date = {row.date: DailySummary.from_row(row) for row in rows}

        missing = [d for d in date_range(start_date, end_date) if d not in by_date]
        if not missing:
            return RangeResult(records=[by_date[d] for d in sorted(by_date)])

        logger.info(
            f"Found {len(missing)} missing dates for user {user_id} "
            f"between {start_date} and {end_date}, computing on the fly"
        )
        for day in missing:
            by_date[day] = await self.aggregator.compute(user_id, day)

        self.schedule_recompute(user_id, missing)

        return RangeResult(
            records=[by_date[d] for d in sorted(by_date)],
            has_gaps=True,
            missing_dates=missing,
        )

    def schedule_recompute(self, user_id: int, dates: Iterable[date]):
        """Recompute dates in the background. Returns the task, or None if no dates."""
        dates = sorted(set(dates))
        if not dates:
            return None
        return create_safe_task(
            self.backfill_dates(user_id, dates),
            f"daily-analytics-{user_id}-{dates[0]}..{dates[-1]}",
        )

    async def backfill_dates(self, user_id: int, dates: List[date]) -> None:
        """Recompute and store each date in turn."""
        for day in dates:
            await self.aggregator.recompute(user_id, day)
        await self.cache.invalidate_pattern(f"analytics:{user_id}:*")
        logger.info(f"Backfilled {len(dates)} dates for user {user_id}")

    async def recalculate_for_all_users(self, day: date) -> int:
        """Recompute one day for every user. Returns the number of users."""
        user_ids = await self.users.get_all_user_ids()
        for user_id in user_ids:
            await self.aggregator.recompute(user_id, day)
        await self.cache.invalidate_pattern("analytics:*")
        return len(user_ids)

    async def log_cron_job_result(
        self,
        day: date,
        status: str,
        error_message: Optional[str] = None,
    ) -> None:
        await self.cron_log.log(DAILY_ANALYTICS_JOB, day, status, error_message)

    async def recalculate_yesterday_for_all_users(self, today: Optional[date] = None) -> date:
        """
        Nightly job body: recompute yesterday for every user and log the run.

        Raises:
            BackfillError: if any recompute fails (a failed row is logged first)
        """
        yesterday = today - timedelta(days=1) if today else get_local_yesterday()
        await self._run_day(yesterday)
        return yesterday

    async def on_server_start(self, today: Optional[date] = None) -> List[date]:
        """
        Replay every day between the last completed nightly run and yesterday.

        Without any completed run there is no known starting point and
        nothing is replayed.

        Returns:
            Dates that were recomputed
        """
        last_run = await self.cron_log.get_last_completed_date(DAILY_ANALYTICS_JOB)
        if last_run is None:
            logger.info("No previous daily analytics run found, skipping catch-up")
            return []

        yesterday = today - timedelta(days=1) if today else get_local_yesterday()
        if last_run >= yesterday:
            logger.info(f"Daily analytics up to date (last run {last_run})")
            return []

        dates = date_range(last_run + timedelta(days=1), yesterday)
        logger.info(f"Catching up daily analytics for {len(dates)} days: {dates[0]} to {dates[-1]}")

        for day in dates:
            await self._run_day(day)

        return dates

    async def _run_day(self, day: date) -> None:
        try:
            users = await self.recalculate_for_all_users(day)
        except Exception as e:
            logger.error(f"Daily analytics recompute failed for {day}: {e}", exc_info=True)
            await self.log_cron_job_result(day, CronJobStatusEnum.FAILED.value, str(e))
            raise BackfillError(f"Daily analytics recompute failed for {day}: {e}", failed_date=day) from e

        await self.log_cron_job_result(day, CronJobStatusEnum.COMPLETED.value)
        logger.info(f"Daily analytics completed for {day} ({users} users)")


_backfill_manager: Optional[BackfillManager] = None


def get_backfill_manager() -> BackfillManager:
    """Get the backfill manager singleton."""
    global _backfill_manager
    if _backfill_manager is None:
        _backfill_manager = BackfillManager()
    return _backfill_manager
