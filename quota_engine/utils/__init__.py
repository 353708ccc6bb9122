"""Shared helpers: background tasks and date handling."""

from .background_tasks import create_safe_task, wait_for_background_tasks
from .datetime_utils import date_range, day_bounds, get_local_today, get_local_yesterday

__all__ = [
    "create_safe_task",
    "wait_for_background_tasks",
    "date_range",
    "day_bounds",
    "get_local_today",
    "get_local_yesterday",
]
