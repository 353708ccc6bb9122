"""
Centralized date and timezone utilities.

Work records are stored as naive local datetimes; calendar days are
interpreted in the configured local timezone.
"""

from datetime import datetime, date, time, timedelta
from typing import List, Optional, Tuple, Union
import pytz

from config import settings


def get_local_tz() -> pytz.BaseTzInfo:
    """Get the configured local timezone."""
    return pytz.timezone(settings.timezone)


def get_local_now() -> datetime:
    """Get current time in local timezone (naive)."""
    local_tz = get_local_tz()
    return datetime.now(local_tz).replace(tzinfo=None)


def get_local_today() -> date:
    """Get today's calendar date in local timezone."""
    return get_local_now().date()


def get_local_yesterday() -> date:
    return get_local_today() - timedelta(days=1)


def to_naive_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive local time for database storage.

    Naive datetimes are assumed to already be local.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        local_dt = dt.astimezone(get_local_tz())
        return local_dt.replace(tzinfo=None)

    return dt


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return [00:00:00, 23:59:59.999999] of a calendar day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def date_range(start_date: date, end_date: date) -> List[date]:
    """All dates from start_date to end_date inclusive. Empty when start > end."""
    days = (end_date - start_date).days
    return [start_date + timedelta(days=i) for i in range(days + 1)]


def parse_date(value: Union[str, date, datetime]) -> date:
    """Accept YYYY-MM-DD strings, dates or datetimes."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def format_date(day: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return day.strftime("%Y-%m-%d")


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())
