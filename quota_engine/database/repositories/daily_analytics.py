"""
Repository for pre-aggregated daily analytics.

Rows are keyed by (user_id, date). Writes are a single atomic upsert so two
recomputes racing on the same key both succeed and the last one wins.
"""

import logging
from datetime import date, datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite

from ..connection import get_database, Database
from ..models import DailyAnalyticsDB

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = (
    "work_duration_by_resource",
    "total_work_duration",
    "meeting_count",
    "total_meeting_duration",
    "routine_completed",
    "routine_total",
)


class DailyAnalyticsRepository:
    """Repository for daily analytics rows."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def upsert(self, user_id: int, day: date, values: Dict[str, Any]) -> None:
        """
        Insert or overwrite the summary row for (user_id, day).

        Args:
            values: Mapping with every key in SUMMARY_FIELDS
        """
        now = datetime.now()
        row = {field: values[field] for field in SUMMARY_FIELDS}

        async with self.db.session() as session:
            dialect = session.bind.dialect.name

            if dialect in ("postgresql", "sqlite"):
                insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
                stmt = insert(DailyAnalyticsDB).values(
                    user_id=user_id,
                    date=day,
                    created_at=now,
                    updated_at=now,
                    **row,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id", "date"],
                    set_={**row, "updated_at": now},
                )
                await session.execute(stmt)
                return

            # Other dialects: select then write
            result = await session.execute(
                select(DailyAnalyticsDB).where(
                    DailyAnalyticsDB.user_id == user_id,
                    DailyAnalyticsDB.date == day,
                )
            )
            existing = result.scalar_one_or_none()
            if existing:
                for field, value in row.items():
                    setattr(existing, field, value)
                existing.updated_at = now
            else:
                session.add(DailyAnalyticsDB(user_id=user_id, date=day, created_at=now, updated_at=now, **row))
            await session.flush()

    async def get(self, user_id: int, day: date) -> Optional[DailyAnalyticsDB]:
        """Get the row for one day, if persisted."""
        async with self.db.session() as session:
            result = await session.execute(
                select(DailyAnalyticsDB).where(
                    DailyAnalyticsDB.user_id == user_id,
                    DailyAnalyticsDB.date == day,
                )
            )
            return result.scalar_one_or_none()

    async def get_range(self, user_id: int, start_date: date, end_date: date) -> List[DailyAnalyticsDB]:
        """Get persisted rows within [start_date, end_date], ordered by date."""
        async with self.db.session() as session:
            result = await session.execute(
                select(DailyAnalyticsDB).where(
                    DailyAnalyticsDB.user_id == user_id,
                    DailyAnalyticsDB.date >= start_date,
                    DailyAnalyticsDB.date <= end_date,
                ).order_by(DailyAnalyticsDB.date)
            )
            return list(result.scalars().all())


_daily_analytics_repository: Optional[DailyAnalyticsRepository] = None


def get_daily_analytics_repository() -> DailyAnalyticsRepository:
    """Get the daily analytics repository singleton."""
    global _daily_analytics_repository
    if _daily_analytics_repository is None:
        _daily_analytics_repository = DailyAnalyticsRepository()
    return _daily_analytics_repository
