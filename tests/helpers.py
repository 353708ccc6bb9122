"""Small helpers shared by test modules."""

from datetime import date, datetime


def at(d: date, hour: int = 10, minute: int = 0) -> datetime:
    """Naive local datetime on a given day."""
    return datetime(d.year, d.month, d.day, hour, minute)
