"""
Repository for per-day occurrences: meeting instances and routine task instances.

Both feed the daily analytics summary (meeting count/duration, routine
completion counts).
"""

import logging
from datetime import date, datetime
from typing import Optional, List

from sqlalchemy import select

from ..connection import get_database, Database
from ..models import (
    MeetingDB,
    MeetingInstanceDB,
    RoutineTaskInstanceDB,
    MeetingInstanceStatusEnum,
    RoutineInstanceStatusEnum,
)
from ..exceptions import EntityNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class InstanceRepository:
    """Repository for meeting and routine task instance operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    # ==================== MEETINGS ====================

    async def create_meeting(self, user_id: int, title: str, meeting_type: str = "one-time") -> MeetingDB:
        """Create a meeting definition."""
        async with self.db.session() as session:
            meeting = MeetingDB(user_id=user_id, title=title, meeting_type=meeting_type)
            session.add(meeting)
            await session.flush()
            return meeting

    async def create_meeting_instance(
        self,
        user_id: int,
        meeting_id: int,
        scheduled_date: date,
        status: str = "pending",
        actual_duration: Optional[int] = None,
    ) -> MeetingInstanceDB:
        """Create a meeting instance on a given day."""
        async with self.db.session() as session:
            instance = MeetingInstanceDB(
                user_id=user_id,
                meeting_id=meeting_id,
                scheduled_date=scheduled_date,
                status=status,
                actual_duration=actual_duration,
            )
            session.add(instance)
            await session.flush()
            return instance

    async def complete_meeting_instance(
        self,
        user_id: int,
        instance_id: int,
        started_at: datetime,
        ended_at: datetime,
    ) -> MeetingInstanceDB:
        """Mark a meeting instance completed and record its actual duration."""
        if ended_at < started_at:
            raise ValidationError("ended_at is before started_at")

        async with self.db.session() as session:
            result = await session.execute(
                select(MeetingInstanceDB).where(
                    MeetingInstanceDB.id == instance_id,
                    MeetingInstanceDB.user_id == user_id,
                )
            )
            instance = result.scalar_one_or_none()
            if not instance:
                raise EntityNotFoundError(f"Meeting instance not found: {instance_id}")

            instance.status = MeetingInstanceStatusEnum.COMPLETED.value
            instance.started_at = started_at
            instance.ended_at = ended_at
            instance.actual_duration = int((ended_at - started_at).total_seconds())
            await session.flush()
            logger.info(f"Completed meeting instance {instance_id} ({instance.actual_duration}s)")
            return instance

    async def get_completed_meetings_in_range(
        self,
        user_id: int,
        start_date: date,
        end_date: date,
    ) -> List[MeetingInstanceDB]:
        """Completed meeting instances scheduled within [start_date, end_date]."""
        async with self.db.session() as session:
            result = await session.execute(
                select(MeetingInstanceDB).where(
                    MeetingInstanceDB.user_id == user_id,
                    MeetingInstanceDB.status == MeetingInstanceStatusEnum.COMPLETED.value,
                    MeetingInstanceDB.scheduled_date >= start_date,
                    MeetingInstanceDB.scheduled_date <= end_date,
                )
            )
            return list(result.scalars().all())

    # ==================== ROUTINE INSTANCES ====================

    async def create_routine_instance(
        self,
        user_id: int,
        routine_task_id: int,
        scheduled_date: date,
        status: str = "pending",
    ) -> RoutineTaskInstanceDB:
        """Create a routine task instance on a given day."""
        async with self.db.session() as session:
            instance = RoutineTaskInstanceDB(
                user_id=user_id,
                routine_task_id=routine_task_id,
                scheduled_date=scheduled_date,
                status=status,
            )
            session.add(instance)
            await session.flush()
            return instance

    async def set_routine_instance_status(
        self,
        user_id: int,
        instance_id: int,
        status: str,
        completed_at: Optional[datetime] = None,
    ) -> RoutineTaskInstanceDB:
        """Set a routine instance to pending, completed or skipped."""
        valid = {s.value for s in RoutineInstanceStatusEnum}
        if status not in valid:
            raise ValidationError(f"Invalid routine instance status: {status}")

        async with self.db.session() as session:
            result = await session.execute(
                select(RoutineTaskInstanceDB).where(
                    RoutineTaskInstanceDB.id == instance_id,
                    RoutineTaskInstanceDB.user_id == user_id,
                )
            )
            instance = result.scalar_one_or_none()
            if not instance:
                raise EntityNotFoundError(f"Routine instance not found: {instance_id}")

            instance.status = status
            instance.completed_at = completed_at if status == RoutineInstanceStatusEnum.COMPLETED.value else None
            await session.flush()
            return instance

    async def get_routine_instances_in_range(
        self,
        user_id: int,
        start_date: date,
        end_date: date,
    ) -> List[RoutineTaskInstanceDB]:
        """Routine instances scheduled within [start_date, end_date]."""
        async with self.db.session() as session:
            result = await session.execute(
                select(RoutineTaskInstanceDB).where(
                    RoutineTaskInstanceDB.user_id == user_id,
                    RoutineTaskInstanceDB.scheduled_date >= start_date,
                    RoutineTaskInstanceDB.scheduled_date <= end_date,
                ).order_by(RoutineTaskInstanceDB.scheduled_date, RoutineTaskInstanceDB.id)
            )
            return list(result.scalars().all())


_instance_repository: Optional[InstanceRepository] = None


def get_instance_repository() -> InstanceRepository:
    """Get the instance repository singleton."""
    global _instance_repository
    if _instance_repository is None:
        _instance_repository = InstanceRepository()
    return _instance_repository
