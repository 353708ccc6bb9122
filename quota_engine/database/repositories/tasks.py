"""
Repository for simple and routine tasks.

Only active tasks take part in priority scoring: simple tasks whose status
is one of the configured active statuses, routine tasks with is_active set.
"""

import logging
from typing import Optional, List, Dict, Iterable

from sqlalchemy import select

from config import settings
from ..connection import get_database, Database
from ..models import SimpleTaskDB, RoutineTaskDB
from ..exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for task operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def create_simple_task(
        self,
        user_id: int,
        title: str,
        resource_group_id: Optional[int] = None,
        status: str = "pending",
    ) -> SimpleTaskDB:
        """Create a simple task."""
        async with self.db.session() as session:
            task = SimpleTaskDB(
                user_id=user_id,
                title=title,
                resource_group_id=resource_group_id,
                status=status,
            )
            session.add(task)
            await session.flush()
            logger.info(f"Created simple task {task.id} for user {user_id}")
            return task

    async def create_routine_task(
        self,
        user_id: int,
        title: str,
        resource_group_id: Optional[int] = None,
        recurrence_rule: Optional[Dict] = None,
        is_active: bool = True,
    ) -> RoutineTaskDB:
        """Create a routine task."""
        async with self.db.session() as session:
            task = RoutineTaskDB(
                user_id=user_id,
                title=title,
                resource_group_id=resource_group_id,
                recurrence_rule=recurrence_rule,
                is_active=is_active,
            )
            session.add(task)
            await session.flush()
            logger.info(f"Created routine task {task.id} for user {user_id}")
            return task

    async def set_simple_task_status(self, user_id: int, task_id: int, status: str) -> SimpleTaskDB:
        """Change the status of a simple task."""
        async with self.db.session() as session:
            result = await session.execute(
                select(SimpleTaskDB).where(
                    SimpleTaskDB.id == task_id,
                    SimpleTaskDB.user_id == user_id,
                )
            )
            task = result.scalar_one_or_none()
            if not task:
                raise EntityNotFoundError(f"Simple task not found: {task_id}")
            task.status = status
            await session.flush()
            return task

    async def set_routine_task_active(self, user_id: int, task_id: int, is_active: bool) -> RoutineTaskDB:
        """Activate or deactivate a routine task."""
        async with self.db.session() as session:
            result = await session.execute(
                select(RoutineTaskDB).where(
                    RoutineTaskDB.id == task_id,
                    RoutineTaskDB.user_id == user_id,
                )
            )
            task = result.scalar_one_or_none()
            if not task:
                raise EntityNotFoundError(f"Routine task not found: {task_id}")
            task.is_active = is_active
            await session.flush()
            return task

    async def get_active_simple_tasks(
        self,
        user_id: int,
        active_statuses: Optional[Iterable[str]] = None,
    ) -> List[SimpleTaskDB]:
        """Get simple tasks in an active status, ordered by id."""
        statuses = list(active_statuses or settings.active_task_statuses)
        async with self.db.session() as session:
            result = await session.execute(
                select(SimpleTaskDB).where(
                    SimpleTaskDB.user_id == user_id,
                    SimpleTaskDB.status.in_(statuses),
                ).order_by(SimpleTaskDB.id)
            )
            return list(result.scalars().all())

    async def get_active_routine_tasks(self, user_id: int) -> List[RoutineTaskDB]:
        """Get active routine tasks, ordered by id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(RoutineTaskDB).where(
                    RoutineTaskDB.user_id == user_id,
                    RoutineTaskDB.is_active.is_(True),
                ).order_by(RoutineTaskDB.id)
            )
            return list(result.scalars().all())

    async def get_routine_titles(self, user_id: int) -> Dict[int, str]:
        """Map routine task id -> title for every routine task of a user."""
        async with self.db.session() as session:
            result = await session.execute(
                select(RoutineTaskDB.id, RoutineTaskDB.title).where(
                    RoutineTaskDB.user_id == user_id
                )
            )
            return {row.id: row.title for row in result.all()}


_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
