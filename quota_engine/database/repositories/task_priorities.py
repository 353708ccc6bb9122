"""
Repository for task priority rows.

A user's rows are always replaced as a whole: delete and insert run in one
transaction, so readers never observe a half-written or empty set.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import select, delete

from ..connection import get_database, Database
from ..models import TaskPriorityDB

logger = logging.getLogger(__name__)


class TaskPriorityRepository:
    """Repository for task priority operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def replace_all(
        self,
        user_id: int,
        priorities: List[Dict[str, Any]],
        calculated_at: Optional[datetime] = None,
    ) -> int:
        """
        Replace every priority row of a user.

        Args:
            priorities: Dicts with target_type, target_id, priority_score

        Returns:
            Number of rows written
        """
        calculated_at = calculated_at or datetime.now()

        async with self.db.session() as session:
            await session.execute(
                delete(TaskPriorityDB).where(TaskPriorityDB.user_id == user_id)
            )
            session.add_all([
                TaskPriorityDB(
                    user_id=user_id,
                    target_type=p["target_type"],
                    target_id=p["target_id"],
                    priority_score=p["priority_score"],
                    calculated_at=calculated_at,
                )
                for p in priorities
            ])
            await session.flush()

        logger.info(f"Replaced {len(priorities)} task priorities for user {user_id}")
        return len(priorities)

    async def get_for_user(self, user_id: int) -> List[TaskPriorityDB]:
        """
        Get priority rows ordered by score descending.

        Ties are broken by target_type, then target_id.
        """
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskPriorityDB).where(
                    TaskPriorityDB.user_id == user_id
                ).order_by(
                    TaskPriorityDB.priority_score.desc(),
                    TaskPriorityDB.target_type,
                    TaskPriorityDB.target_id,
                )
            )
            return list(result.scalars().all())


_task_priority_repository: Optional[TaskPriorityRepository] = None


def get_task_priority_repository() -> TaskPriorityRepository:
    """Get the task priority repository singleton."""
    global _task_priority_repository
    if _task_priority_repository is None:
        _task_priority_repository = TaskPriorityRepository()
    return _task_priority_repository
