"""
Repository for work records.

Work records are the raw activity rows every aggregate is derived from.
Callers that mutate them should go through ActivityHooks so the affected
daily analytics get recomputed.
"""

import logging
from datetime import datetime, date
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select

from ..connection import get_database, Database
from ..models import WorkRecordDB
from ..exceptions import ValidationError, EntityNotFoundError
from ...utils.datetime_utils import day_bounds, get_local_now, to_naive_local

logger = logging.getLogger(__name__)


class WorkRecordRepository:
    """Repository for work record operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def create(
        self,
        user_id: int,
        task_name: str,
        duration_seconds: int,
        resource_group_id: Optional[int] = None,
        completed_at: Optional[datetime] = None,
        task_id: Optional[int] = None,
    ) -> WorkRecordDB:
        """Create a work record. completed_at defaults to now."""
        _validate_duration(duration_seconds)

        async with self.db.session() as session:
            record = WorkRecordDB(
                user_id=user_id,
                task_id=task_id,
                task_name=task_name,
                duration_seconds=duration_seconds,
                resource_group_id=resource_group_id,
                completed_at=to_naive_local(completed_at) or get_local_now(),
            )
            session.add(record)
            await session.flush()
            logger.info(f"Created work record {record.id} for user {user_id} ({duration_seconds}s)")
            return record

    async def update(
        self,
        record_id: int,
        user_id: int,
        updates: Dict[str, Any],
    ) -> Tuple[WorkRecordDB, datetime]:
        """
        Update a work record.

        Returns:
            (updated record, completed_at before the update)
        """
        allowed = {"task_name", "duration_seconds", "completed_at", "resource_group_id"}
        unknown = set(updates) - allowed
        if unknown:
            raise ValidationError(f"Cannot update fields: {sorted(unknown)}")
        if "duration_seconds" in updates:
            _validate_duration(updates["duration_seconds"])

        async with self.db.session() as session:
            record = await self._get_owned(session, record_id, user_id)
            previous_completed_at = record.completed_at

            for field, value in updates.items():
                if field == "completed_at":
                    value = to_naive_local(value)
                setattr(record, field, value)

            await session.flush()
            logger.info(f"Updated work record {record_id} for user {user_id}")
            return record, previous_completed_at

    async def delete(self, record_id: int, user_id: int) -> WorkRecordDB:
        """Delete a work record and return the deleted row."""
        async with self.db.session() as session:
            record = await self._get_owned(session, record_id, user_id)
            await session.delete(record)
            await session.flush()
            logger.info(f"Deleted work record {record_id} for user {user_id}")
            return record

    async def get_by_id(self, record_id: int, user_id: int) -> Optional[WorkRecordDB]:
        """Get a single work record owned by user."""
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkRecordDB).where(
                    WorkRecordDB.id == record_id,
                    WorkRecordDB.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_for_day(self, user_id: int, day: date) -> List[WorkRecordDB]:
        """Get records whose completed_at falls on the given calendar day."""
        start_dt, end_dt = day_bounds(day)
        return await self.get_in_range(user_id, start_dt, end_dt)

    async def get_in_range(
        self,
        user_id: int,
        start_dt: datetime,
        end_dt: datetime,
        newest_first: bool = False,
    ) -> List[WorkRecordDB]:
        """Get records completed within [start_dt, end_dt]."""
        order = WorkRecordDB.completed_at.desc() if newest_first else WorkRecordDB.completed_at
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkRecordDB).where(
                    WorkRecordDB.user_id == user_id,
                    WorkRecordDB.completed_at >= start_dt,
                    WorkRecordDB.completed_at <= end_dt,
                ).order_by(order, WorkRecordDB.id)
            )
            return list(result.scalars().all())

    async def get_usage_since(
        self,
        user_id: int,
        since: datetime,
        until: datetime,
    ) -> List[Tuple[Optional[int], int, datetime]]:
        """
        Get (resource_group_id, duration_seconds, completed_at) rows completed
        within [since, until]. Lightweight projection for quota calculation.
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(
                    WorkRecordDB.resource_group_id,
                    WorkRecordDB.duration_seconds,
                    WorkRecordDB.completed_at,
                ).where(
                    WorkRecordDB.user_id == user_id,
                    WorkRecordDB.completed_at >= since,
                    WorkRecordDB.completed_at <= until,
                )
            )
            return [tuple(row) for row in result.all()]

    async def _get_owned(self, session, record_id: int, user_id: int) -> WorkRecordDB:
        result = await session.execute(
            select(WorkRecordDB).where(
                WorkRecordDB.id == record_id,
                WorkRecordDB.user_id == user_id,
            )
        )
        record = result.scalar_one_or_none()
        if not record:
            raise EntityNotFoundError(f"Work record not found: {record_id}")
        return record


def _validate_duration(duration_seconds: int) -> None:
    if duration_seconds is None or duration_seconds <= 0:
        raise ValidationError(f"duration_seconds must be positive, got {duration_seconds}")


_work_record_repository: Optional[WorkRecordRepository] = None


def get_work_record_repository() -> WorkRecordRepository:
    """Get the work record repository singleton."""
    global _work_record_repository
    if _work_record_repository is None:
        _work_record_repository = WorkRecordRepository()
    return _work_record_repository
