"""
Database module for the Quota Engine.

Handles:
- Source rows: users, resource groups, work records, tasks, meeting and routine instances
- Derived rows: daily analytics, task priorities
- Cron job audit log
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    UserDB,
    ResourceGroupDB,
    WorkRecordDB,
    SimpleTaskDB,
    RoutineTaskDB,
    RoutineTaskInstanceDB,
    MeetingDB,
    MeetingInstanceDB,
    DailyAnalyticsDB,
    TaskPriorityDB,
    CronJobLogDB,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "UserDB",
    "ResourceGroupDB",
    "WorkRecordDB",
    "SimpleTaskDB",
    "RoutineTaskDB",
    "RoutineTaskInstanceDB",
    "MeetingDB",
    "MeetingInstanceDB",
    "DailyAnalyticsDB",
    "TaskPriorityDB",
    "CronJobLogDB",
]
