"""
Analytics read API.

Combines the backfill manager, sliding-window aggregator and priority
scorer into the queries a dashboard needs. Results are plain dicts with
YYYY-MM-DD date strings so they can be cached in Redis unchanged.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from config.settings import Settings, get_settings
from .backfill import BackfillManager, get_backfill_manager
from .daily_aggregator import UNASSIGNED_KEY
from .priority import PriorityScorer
from .sliding_window import window_series
from ..cache import AnalyticsCache, get_analytics_cache
from ..database.exceptions import ValidationError
from ..database.models import RoutineInstanceStatusEnum
from ..database.repositories import (
    DailyAnalyticsRepository,
    InstanceRepository,
    TaskRepository,
    UserRepository,
    WorkRecordRepository,
    get_daily_analytics_repository,
    get_instance_repository,
    get_task_repository,
    get_user_repository,
    get_work_record_repository,
)
from ..utils.datetime_utils import (
    date_range,
    day_bounds,
    format_date,
    get_local_today,
    parse_date,
    week_start,
)

logger = logging.getLogger(__name__)

UNASSIGNED_NAME = "Unassigned"
UNKNOWN_NAME = "Unknown"

MEETING_WARNING_YELLOW = 30
MEETING_WARNING_RED = 50

# Streak search stops after this many consecutive days without instances
MAX_DAYS_WITHOUT_ROUTINES = 30

DateLike = Union[str, date]


def _resource_id(key: str) -> Optional[int]:
    return None if key == UNASSIGNED_KEY else int(key)


def _resource_name(key: str, names: Dict[int, str]) -> str:
    if key == UNASSIGNED_KEY:
        return UNASSIGNED_NAME
    return names.get(int(key), UNKNOWN_NAME)


def _percentage(part: float, total: float) -> float:
    return part / total * 100 if total > 0 else 0


def calculate_streak(instances: List[Any], today: date) -> int:
    """
    Count consecutive days, back from today, on which every routine
    instance was completed. Days with no instances are skipped.
    """
    by_day: Dict[date, List[Any]] = {}
    for instance in instances:
        by_day.setdefault(instance.scheduled_date, []).append(instance)
    if not by_day:
        return 0

    earliest = min(by_day)
    streak = 0
    empty_days = 0
    day = today
    while day >= earliest:
        day_instances = by_day.get(day)
        if not day_instances:
            empty_days += 1
            if empty_days >= MAX_DAYS_WITHOUT_ROUTINES:
                break
            day -= timedelta(days=1)
            continue

        empty_days = 0
        if all(i.status == RoutineInstanceStatusEnum.COMPLETED.value for i in day_instances):
            streak += 1
            day -= timedelta(days=1)
        else:
            break

    return streak


def calculate_weekly_trend(
    instances: List[Any],
    start_date: date,
    end_date: date,
    today: date,
) -> List[Dict[str, Any]]:
    """Completion rate per Monday-starting week, up to today."""
    weeks: Dict[date, Dict[str, int]] = {}
    for day in date_range(start_date, min(end_date, today)):
        weeks.setdefault(week_start(day), {"completed": 0, "total": 0})

    for instance in instances:
        if instance.scheduled_date > today:
            continue
        week = weeks.setdefault(week_start(instance.scheduled_date), {"completed": 0, "total": 0})
        week["total"] += 1
        if instance.status == RoutineInstanceStatusEnum.COMPLETED.value:
            week["completed"] += 1

    return [
        {
            "period": format_date(week),
            "rate": _percentage(counts["completed"], counts["total"]),
            "completed": counts["completed"],
            "total": counts["total"],
        }
        for week, counts in sorted(weeks.items())
    ]


def meeting_warning_level(meeting_ratio: float) -> str:
    if meeting_ratio >= MEETING_WARNING_RED:
        return "red"
    if meeting_ratio >= MEETING_WARNING_YELLOW:
        return "yellow"
    return "none"


class AnalyticsService:
    """Dashboard queries over daily analytics, raw activity and priorities."""

    def __init__(
        self,
        backfill: Optional[BackfillManager] = None,
        scorer: Optional[PriorityScorer] = None,
        cache: Optional[AnalyticsCache] = None,
        daily_analytics: Optional[DailyAnalyticsRepository] = None,
        users: Optional[UserRepository] = None,
        work_records: Optional[WorkRecordRepository] = None,
        instances: Optional[InstanceRepository] = None,
        tasks: Optional[TaskRepository] = None,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache if cache is not None else get_analytics_cache()
        if backfill is None:
            backfill = get_backfill_manager() if cache is None else BackfillManager(cache=self.cache)
        self.backfill = backfill
        self.scorer = scorer or PriorityScorer()
        self.daily_analytics = daily_analytics or get_daily_analytics_repository()
        self.users = users or get_user_repository()
        self.work_records = work_records or get_work_record_repository()
        self.instances = instances or get_instance_repository()
        self.tasks = tasks or get_task_repository()
        self.settings = settings or get_settings()

    # ==================== VALIDATION ====================

    def _validate_range(self, start_date: DateLike, end_date: DateLike):
        try:
            start, end = parse_date(start_date), parse_date(end_date)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}") from e

        if start > end:
            raise ValidationError(f"start_date {start} is after end_date {end}")
        days = (end - start).days + 1
        if days > self.settings.max_range_days:
            raise ValidationError(
                f"Date range of {days} days exceeds maximum of {self.settings.max_range_days}"
            )
        return start, end

    def _validate_window(self, window_days: int) -> None:
        if window_days < 1 or window_days > self.settings.max_window_days:
            raise ValidationError(
                f"window_days must be between 1 and {self.settings.max_window_days}, got {window_days}"
            )

    async def _resource_names(self, user_id: int) -> Dict[int, str]:
        groups = await self.users.get_resource_groups(user_id)
        return {g.id: g.name for g in groups}

    # ==================== QUERIES ====================

    async def get_overview(self, user_id: int, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        """
        Totals and resource distribution over stored daily summaries.

        days_covered counts only days that have a stored summary.
        """
        start, end = self._validate_range(start_date, end_date)
        cache_key = f"analytics:{user_id}:overview:{start}:{end}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        rows = await self.daily_analytics.get_range(user_id, start, end)

        total_work = 0
        total_meeting = 0
        by_resource: Dict[str, int] = {}
        for row in rows:
            total_work += row.total_work_duration or 0
            total_meeting += row.total_meeting_duration or 0
            for key, duration in (row.work_duration_by_resource or {}).items():
                by_resource[str(key)] = by_resource.get(str(key), 0) + duration

        names = await self._resource_names(user_id)
        distribution = [
            {
                "resource_id": _resource_id(key),
                "name": _resource_name(key, names),
                "duration": duration,
                "percentage": _percentage(duration, total_work),
            }
            for key, duration in by_resource.items()
        ]
        distribution.sort(key=lambda d: d["duration"], reverse=True)

        result = {
            "total_work_duration": total_work,
            "total_meeting_duration": total_meeting,
            "total_time_span": total_work + total_meeting,
            "resource_distribution": distribution,
            "days_covered": len(rows),
        }
        await self.cache.set(cache_key, result)
        return result

    async def get_sliding_window(
        self,
        user_id: int,
        window_days: int,
        resource_group_id: Optional[int],
        start_date: DateLike,
        end_date: DateLike,
    ) -> Dict[str, Any]:
        """
        Trailing-window resource percentages for every day in the range.

        When has_gaps is true the series includes days computed on the fly;
        such responses are not cached so a later call returns stored data.
        """
        self._validate_window(window_days)
        start, end = self._validate_range(start_date, end_date)

        cache_key = f"analytics:{user_id}:window:{window_days}:{resource_group_id}:{start}:{end}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        range_result = await self.backfill.ensure_range(user_id, start, end)
        points = window_series(range_result.records, window_days, resource_group_id)

        groups = await self.users.get_resource_groups(user_id)
        names = {g.id: g.name for g in groups}
        limits = {g.id: g.percentage_limit for g in groups}

        data_points = [
            {
                "date": format_date(point.date),
                "percentages": [
                    {
                        "resource_id": _resource_id(key),
                        "name": _resource_name(key, names),
                        "percentage": pct,
                    }
                    for key, pct in point.percentages.items()
                ],
                "total_duration": point.total_duration,
            }
            for point in points
        ]

        result = {
            "data_points": data_points,
            "target_line": limits.get(resource_group_id) if resource_group_id is not None else None,
            "has_gaps": range_result.has_gaps,
            "window_days": window_days,
            "resource_group_id": resource_group_id,
        }
        if not range_result.has_gaps:
            await self.cache.set(cache_key, result)
        return result

    async def get_routine_task_stats(
        self,
        user_id: int,
        start_date: DateLike,
        end_date: DateLike,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Completion rates, streak and weekly trend of routine tasks."""
        start, end = self._validate_range(start_date, end_date)
        today = today or get_local_today()

        instances = await self.instances.get_routine_instances_in_range(user_id, start, end)
        titles = await self.tasks.get_routine_titles(user_id)

        past = [i for i in instances if i.scheduled_date <= today]
        completed = [i for i in past if i.status == RoutineInstanceStatusEnum.COMPLETED.value]

        per_task: Dict[int, Dict[str, int]] = {}
        for instance in past:
            counts = per_task.setdefault(instance.routine_task_id, {"completed": 0, "total": 0})
            counts["total"] += 1
            if instance.status == RoutineInstanceStatusEnum.COMPLETED.value:
                counts["completed"] += 1

        by_task = [
            {
                "routine_task_id": task_id,
                "title": titles.get(task_id, UNKNOWN_NAME),
                "completed_count": counts["completed"],
                "total_count": counts["total"],
                "rate": _percentage(counts["completed"], counts["total"]),
            }
            for task_id, counts in per_task.items()
        ]
        by_task.sort(key=lambda t: t["rate"], reverse=True)

        return {
            "overall_rate": _percentage(len(completed), len(past)),
            "streak": calculate_streak(instances, today),
            "by_task": by_task,
            "trend": calculate_weekly_trend(instances, start, end, today),
            "total_completed": len(completed),
            "total_instances": len(past),
        }

    async def get_meeting_stats(self, user_id: int, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        """Meeting load over the range compared with the preceding period of equal length."""
        start, end = self._validate_range(start_date, end_date)

        meetings = await self.instances.get_completed_meetings_in_range(user_id, start, end)
        total_duration = sum(m.actual_duration or 0 for m in meetings)
        meeting_count = len(meetings)
        period_days = (end - start).days + 1

        rows = await self.daily_analytics.get_range(user_id, start, end)
        total_work = sum(row.total_work_duration or 0 for row in rows)
        meeting_ratio = _percentage(total_duration, total_work + total_duration)

        prev_end = start - timedelta(days=1)
        prev_start = start - timedelta(days=period_days)
        prev_meetings = await self.instances.get_completed_meetings_in_range(user_id, prev_start, prev_end)
        prev_duration = sum(m.actual_duration or 0 for m in prev_meetings)

        if prev_duration > 0:
            change_percent = (total_duration - prev_duration) / prev_duration * 100
        else:
            change_percent = 100 if total_duration > 0 else 0

        return {
            "meeting_ratio": meeting_ratio,
            "total_duration": total_duration,
            "average_duration": total_duration / meeting_count if meeting_count else 0,
            "daily_average": meeting_count / period_days,
            "meeting_count": meeting_count,
            "trend": {
                "current_period": total_duration,
                "previous_period": prev_duration,
                "change_percent": change_percent,
                "warning": meeting_warning_level(meeting_ratio),
            },
        }

    async def get_work_records_in_range(
        self,
        user_id: int,
        start_date: DateLike,
        end_date: DateLike,
    ) -> List[Dict[str, Any]]:
        """Work records completed in the range, newest first."""
        start, end = self._validate_range(start_date, end_date)
        start_dt, _ = day_bounds(start)
        _, end_dt = day_bounds(end)

        records = await self.work_records.get_in_range(user_id, start_dt, end_dt, newest_first=True)
        names = await self._resource_names(user_id)

        return [
            {
                "id": r.id,
                "task_name": r.task_name,
                "duration": r.duration_seconds,
                "resource_group_id": r.resource_group_id,
                "resource_name": (
                    names.get(r.resource_group_id, UNKNOWN_NAME)
                    if r.resource_group_id is not None else UNASSIGNED_NAME
                ),
                "completed_at": r.completed_at.isoformat(),
            }
            for r in records
        ]

    # ==================== PRIORITIES ====================

    async def refresh_all_priorities(self, user_id: int) -> int:
        return await self.scorer.refresh_all(user_id)

    async def get_sorted_all_tasks(self, user_id: int, today_only: bool = False) -> List[Dict[str, Any]]:
        tasks = await self.scorer.get_sorted_all_tasks(user_id, today_only=today_only)
        return [task.to_dict() for task in tasks]
