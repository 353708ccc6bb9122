"""
Daily aggregation of raw activity.

For one (user, calendar day) the aggregator reads every work record,
completed meeting instance and routine instance of that day and builds a
single summary. The summary is always derived from source rows, never
patched with deltas, so repeated or overlapping recomputes converge on the
same stored state.
"""

import asyncio
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, Iterable, Optional, Any

from ..database.models import MeetingInstanceStatusEnum, RoutineInstanceStatusEnum
from ..database.repositories import (
    WorkRecordRepository,
    InstanceRepository,
    DailyAnalyticsRepository,
    get_work_record_repository,
    get_instance_repository,
    get_daily_analytics_repository,
)
from ..utils.datetime_utils import format_date, parse_date

logger = logging.getLogger(__name__)

# Bucket for work records without a resource group
UNASSIGNED_KEY = "null"


def resource_key(resource_group_id: Optional[int]) -> str:
    """Key used in work_duration_by_resource for a group id (or None)."""
    return UNASSIGNED_KEY if resource_group_id is None else str(resource_group_id)


@dataclass
class DailySummary:
    """Per-day statistics, persisted or computed on the fly."""
    date: date
    work_duration_by_resource: Dict[str, int] = field(default_factory=dict)
    total_work_duration: int = 0
    meeting_count: int = 0
    total_meeting_duration: int = 0
    routine_completed: int = 0
    routine_total: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "DailySummary":
        """Build from a DailyAnalyticsDB row."""
        return cls(
            date=row.date,
            work_duration_by_resource={
                str(k): int(v) for k, v in (row.work_duration_by_resource or {}).items()
            },
            total_work_duration=row.total_work_duration or 0,
            meeting_count=row.meeting_count or 0,
            total_meeting_duration=row.total_meeting_duration or 0,
            routine_completed=row.routine_completed or 0,
            routine_total=row.routine_total or 0,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailySummary":
        values = dict(data)
        values["date"] = parse_date(values["date"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = format_date(self.date)
        return data

    def storage_values(self) -> Dict[str, Any]:
        """Columns written to daily_analytics."""
        data = asdict(self)
        data.pop("date")
        return data


def summarize_day(
    day: date,
    work_records: Iterable[Any],
    meetings: Iterable[Any] = (),
    routines: Iterable[Any] = (),
) -> DailySummary:
    """
    Aggregate one day's source rows.

    Args:
        work_records: rows with resource_group_id and duration_seconds
        meetings: meeting instances; only completed ones are counted
        routines: routine instances of the day

    Returns:
        DailySummary with total_work_duration equal to the sum of the
        per-resource durations
    """
    by_resource: Dict[str, int] = {}
    for record in work_records:
        key = resource_key(record.resource_group_id)
        by_resource[key] = by_resource.get(key, 0) + record.duration_seconds

    completed_meetings = [
        m for m in meetings if m.status == MeetingInstanceStatusEnum.COMPLETED.value
    ]
    routines = list(routines)

    return DailySummary(
        date=day,
        work_duration_by_resource=dict(sorted(by_resource.items())),
        total_work_duration=sum(by_resource.values()),
        meeting_count=len(completed_meetings),
        total_meeting_duration=sum(m.actual_duration or 0 for m in completed_meetings),
        routine_completed=sum(
            1 for r in routines if r.status == RoutineInstanceStatusEnum.COMPLETED.value
        ),
        routine_total=len(routines),
    )


class DailyAggregator:
    """Computes and persists daily summaries."""

    def __init__(
        self,
        work_records: Optional[WorkRecordRepository] = None,
        instances: Optional[InstanceRepository] = None,
        daily_analytics: Optional[DailyAnalyticsRepository] = None,
    ):
        self.work_records = work_records or get_work_record_repository()
        self.instances = instances or get_instance_repository()
        self.daily_analytics = daily_analytics or get_daily_analytics_repository()

    async def compute(self, user_id: int, day: date) -> DailySummary:
        """Build the summary for a day without storing it."""
        records, meetings, routines = await asyncio.gather(
            self.work_records.get_for_day(user_id, day),
            self.instances.get_completed_meetings_in_range(user_id, day, day),
            self.instances.get_routine_instances_in_range(user_id, day, day),
        )
        return summarize_day(day, records, meetings, routines)

    async def recompute(self, user_id: int, day: date) -> DailySummary:
        """
        Rebuild and upsert the summary for (user_id, day).

        Safe to call repeatedly and concurrently: the stored row always
        reflects source data as of the last write.
        """
        try:
            summary = await self.compute(user_id, day)
            await self.daily_analytics.upsert(user_id, day, summary.storage_values())
        except Exception as e:
            logger.error(f"Error updating daily analytics for user {user_id}, date {day}: {e}")
            raise

        logger.info(f"Updated daily analytics for user {user_id}, date {day}")
        return summary


_daily_aggregator: Optional[DailyAggregator] = None


def get_daily_aggregator() -> DailyAggregator:
    """Get the daily aggregator singleton."""
    global _daily_aggregator
    if _daily_aggregator is None:
        _daily_aggregator = DailyAggregator()
    return _daily_aggregator
