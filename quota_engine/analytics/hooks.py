"""
Activity mutation hooks.

Every change to raw activity goes through here so the affected days get
recomputed in the background and cached analytics for the user are dropped.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .backfill import BackfillManager, get_backfill_manager
from ..cache import AnalyticsCache
from ..database.models import WorkRecordDB, MeetingInstanceDB, RoutineTaskInstanceDB
from ..database.repositories import (
    WorkRecordRepository,
    InstanceRepository,
    get_work_record_repository,
    get_instance_repository,
)
from ..utils.background_tasks import create_safe_task

logger = logging.getLogger(__name__)


class ActivityHooks:
    """Write path for work records, meeting instances and routine instances."""

    def __init__(
        self,
        work_records: Optional[WorkRecordRepository] = None,
        instances: Optional[InstanceRepository] = None,
        backfill: Optional[BackfillManager] = None,
        cache: Optional[AnalyticsCache] = None,
    ):
        self.work_records = work_records or get_work_record_repository()
        self.instances = instances or get_instance_repository()
        self.backfill = backfill or get_backfill_manager()
        self.cache = cache if cache is not None else self.backfill.cache

    async def create_work_record(
        self,
        user_id: int,
        task_name: str,
        duration_seconds: int,
        resource_group_id: Optional[int] = None,
        completed_at: Optional[datetime] = None,
        task_id: Optional[int] = None,
    ) -> WorkRecordDB:
        record = await self.work_records.create(
            user_id,
            task_name,
            duration_seconds,
            resource_group_id=resource_group_id,
            completed_at=completed_at,
            task_id=task_id,
        )
        await self.activity_changed(user_id, [record.completed_at.date()])
        return record

    async def update_work_record(
        self,
        user_id: int,
        record_id: int,
        updates: Dict[str, Any],
    ) -> WorkRecordDB:
        """Update a record; both the old and the new day are recomputed."""
        record, previous_completed_at = await self.work_records.update(record_id, user_id, updates)
        await self.activity_changed(
            user_id, [previous_completed_at.date(), record.completed_at.date()]
        )
        return record

    async def delete_work_record(self, user_id: int, record_id: int) -> WorkRecordDB:
        record = await self.work_records.delete(record_id, user_id)
        await self.activity_changed(user_id, [record.completed_at.date()])
        return record

    async def complete_meeting_instance(
        self,
        user_id: int,
        instance_id: int,
        started_at: datetime,
        ended_at: datetime,
    ) -> MeetingInstanceDB:
        instance = await self.instances.complete_meeting_instance(
            user_id, instance_id, started_at, ended_at
        )
        await self.activity_changed(user_id, [instance.scheduled_date])
        return instance

    async def set_routine_instance_status(
        self,
        user_id: int,
        instance_id: int,
        status: str,
        completed_at: Optional[datetime] = None,
    ) -> RoutineTaskInstanceDB:
        instance = await self.instances.set_routine_instance_status(
            user_id, instance_id, status, completed_at=completed_at
        )
        await self.activity_changed(user_id, [instance.scheduled_date])
        return instance

    async def activity_changed(self, user_id: int, days: Iterable[date]) -> List[date]:
        """
        Schedule recompute of the given days and drop the user's cached analytics.

        The cache is cleared now and again once the recompute has committed,
        so a read landing in between cannot keep the old totals.
        """
        days = sorted(set(days))
        if not days:
            return days
        removed = await self.cache.invalidate_pattern(f"analytics:{user_id}:*")
        create_safe_task(
            self._recompute(user_id, days),
            f"activity-recompute-{user_id}-{days[0]}..{days[-1]}",
        )
        logger.debug(f"Activity changed for user {user_id} on {days}, {removed} cache entries dropped")
        return days

    async def _recompute(self, user_id: int, days: List[date]):
        await self.backfill.backfill_dates(user_id, days)
        await self.cache.invalidate_pattern(f"analytics:{user_id}:*")
