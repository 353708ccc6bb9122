"""
Repository classes for database operations.

Each repository handles CRUD and range queries for its entity type.
"""

from .users import UserRepository, get_user_repository
from .work_records import WorkRecordRepository, get_work_record_repository
from .tasks import TaskRepository, get_task_repository
from .instances import InstanceRepository, get_instance_repository
from .daily_analytics import DailyAnalyticsRepository, get_daily_analytics_repository
from .task_priorities import TaskPriorityRepository, get_task_priority_repository
from .cron_log import CronJobLogRepository, get_cron_log_repository

__all__ = [
    "UserRepository",
    "get_user_repository",
    "WorkRecordRepository",
    "get_work_record_repository",
    "TaskRepository",
    "get_task_repository",
    "InstanceRepository",
    "get_instance_repository",
    "DailyAnalyticsRepository",
    "get_daily_analytics_repository",
    "TaskPriorityRepository",
    "get_task_priority_repository",
    "CronJobLogRepository",
    "get_cron_log_repository",
]
