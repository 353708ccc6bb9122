"""
Repository for the cron job audit log.

Append-only. Used to find the last successfully recomputed day so a
restarted process can catch up on the days it missed.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select

from ..connection import get_database, Database
from ..models import CronJobLogDB, CronJobStatusEnum

logger = logging.getLogger(__name__)


class CronJobLogRepository:
    """Repository for cron job log operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def log(
        self,
        job_name: str,
        run_date: date,
        status: str,
        error_message: Optional[str] = None,
    ) -> CronJobLogDB:
        """Append a log row for one processed date."""
        async with self.db.session() as session:
            entry = CronJobLogDB(
                job_name=job_name,
                last_run_date=run_date,
                status=status,
                error_message=error_message,
            )
            session.add(entry)
            await session.flush()
            return entry

    async def get_last_completed_date(self, job_name: str) -> Optional[date]:
        """Latest last_run_date among completed runs of a job."""
        async with self.db.session() as session:
            result = await session.execute(
                select(CronJobLogDB.last_run_date).where(
                    CronJobLogDB.job_name == job_name,
                    CronJobLogDB.status == CronJobStatusEnum.COMPLETED.value,
                ).order_by(CronJobLogDB.last_run_date.desc()).limit(1)
            )
            return result.scalar_one_or_none()


_cron_log_repository: Optional[CronJobLogRepository] = None


def get_cron_log_repository() -> CronJobLogRepository:
    """Get the cron job log repository singleton."""
    global _cron_log_repository
    if _cron_log_repository is None:
        _cron_log_repository = CronJobLogRepository()
    return _cron_log_repository
