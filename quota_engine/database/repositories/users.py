"""
Repository for users and their resource groups.
"""

import logging
from typing import Optional, List

from sqlalchemy import select

from ..connection import get_database, Database
from ..models import UserDB, ResourceGroupDB
from ..exceptions import ValidationError, EntityNotFoundError

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user and resource group operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def create_user(self, name: Optional[str] = None, email: Optional[str] = None) -> UserDB:
        """Create a user."""
        async with self.db.session() as session:
            user = UserDB(name=name, email=email)
            session.add(user)
            await session.flush()
            logger.info(f"Created user {user.id}")
            return user

    async def get_all_user_ids(self) -> List[int]:
        """Get the ids of every user, ascending."""
        async with self.db.session() as session:
            result = await session.execute(select(UserDB.id).order_by(UserDB.id))
            return list(result.scalars().all())

    async def create_resource_group(
        self,
        user_id: int,
        name: str,
        percentage_limit: Optional[int] = None
    ) -> ResourceGroupDB:
        """Create a resource group with an optional 0-100 percentage quota."""
        _validate_limit(percentage_limit)

        async with self.db.session() as session:
            group = ResourceGroupDB(
                user_id=user_id,
                name=name,
                percentage_limit=percentage_limit,
            )
            session.add(group)
            await session.flush()
            logger.info(f"Created resource group {group.id} ({name}) for user {user_id}")
            return group

    async def update_resource_group_limit(
        self,
        user_id: int,
        group_id: int,
        percentage_limit: Optional[int]
    ) -> ResourceGroupDB:
        """Change the percentage quota of a group."""
        _validate_limit(percentage_limit)

        async with self.db.session() as session:
            result = await session.execute(
                select(ResourceGroupDB).where(
                    ResourceGroupDB.id == group_id,
                    ResourceGroupDB.user_id == user_id,
                )
            )
            group = result.scalar_one_or_none()
            if not group:
                raise EntityNotFoundError(f"Resource group not found: {group_id}")

            group.percentage_limit = percentage_limit
            await session.flush()
            return group

    async def get_resource_groups(self, user_id: int) -> List[ResourceGroupDB]:
        """Get all resource groups owned by a user."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ResourceGroupDB)
                .where(ResourceGroupDB.user_id == user_id)
                .order_by(ResourceGroupDB.id)
            )
            return list(result.scalars().all())


def _validate_limit(percentage_limit: Optional[int]) -> None:
    if percentage_limit is not None and not 0 <= percentage_limit <= 100:
        raise ValidationError(f"percentage_limit must be between 0 and 100, got {percentage_limit}")


_user_repository: Optional[UserRepository] = None


def get_user_repository() -> UserRepository:
    """Get the user repository singleton."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
