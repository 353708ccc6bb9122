"""
Sliding-window resource percentages.

Walks a gap-free, date-ordered series of daily summaries once. Each day is
added to running per-resource sums and the day that falls out of the
window is subtracted, so the whole series costs O(days) time and
O(distinct resources) memory.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union


@dataclass
class DataPoint:
    """Trailing-window breakdown ending on one day."""
    date: date
    # resource key ("<group id>" or "null") -> percentage of window total
    percentages: Dict[str, float] = field(default_factory=dict)
    total_duration: int = 0


def _percentage(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0.0


def window_series(
    daily_records: Sequence[Any],
    window_days: int,
    resource_group_filter: Optional[Union[int, str]] = None,
) -> List[DataPoint]:
    """
    Compute one DataPoint per day in daily_records.

    Args:
        daily_records: chronologically ordered, gap-free summaries exposing
            date, work_duration_by_resource and total_work_duration
        window_days: trailing window length, at least 1
        resource_group_filter: when set, each point holds only that
            resource's percentage (0 if absent from the window); "null"
            selects the unassigned bucket

    Returns:
        DataPoints in input order. Without a filter every resource with a
        positive duration in the window is listed, in no particular order.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")

    filter_key = None if resource_group_filter is None else str(resource_group_filter)

    window_sum: Dict[str, int] = {}
    window_total = 0
    result: List[DataPoint] = []

    for i, day in enumerate(daily_records):
        for key, duration in (day.work_duration_by_resource or {}).items():
            key = str(key)
            window_sum[key] = window_sum.get(key, 0) + duration
        window_total += day.total_work_duration or 0

        if i >= window_days:
            evicted = daily_records[i - window_days]
            for key, duration in (evicted.work_duration_by_resource or {}).items():
                key = str(key)
                remaining = window_sum.get(key, 0) - duration
                if remaining:
                    window_sum[key] = remaining
                else:
                    window_sum.pop(key, None)
            window_total -= evicted.total_work_duration or 0

        if filter_key is not None:
            percentages = {filter_key: _percentage(window_sum.get(filter_key, 0), window_total)}
        else:
            percentages = {
                key: _percentage(duration, window_total)
                for key, duration in window_sum.items()
                if duration > 0
            }

        result.append(DataPoint(date=day.date, percentages=percentages, total_duration=window_total))

    return result
