"""
Resource quota calculator.

Measures, for every trailing period, how much of a user's work time went to
each resource group and compares it to the group's percentage limit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .periods import PERIODS, SIX_MONTHS, MAX_PERIOD_DAYS
from ..database.repositories import (
    UserRepository,
    WorkRecordRepository,
    get_user_repository,
    get_work_record_repository,
)
from ..utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)


@dataclass
class GroupLimit:
    limit: float
    remaining_6m: float
    warning: bool = False
    over_limit_periods: int = 0


@dataclass
class GroupUsage:
    duration: int
    percentage: float


@dataclass
class PeriodUsage:
    total_duration: int = 0
    # Only groups with activity in the period appear here
    groups: Dict[int, GroupUsage] = field(default_factory=dict)


@dataclass
class ResourceStats:
    group_limits: Dict[int, GroupLimit]
    periods: Dict[str, PeriodUsage]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_limits": {
                group_id: {
                    "limit": gl.limit,
                    "remaining_6m": gl.remaining_6m,
                    "warning": gl.warning,
                    "over_limit_periods": gl.over_limit_periods,
                }
                for group_id, gl in self.group_limits.items()
            },
            "periods": {
                key: {
                    "total_duration": usage.total_duration,
                    "groups": {
                        group_id: {"duration": g.duration, "percentage": g.percentage}
                        for group_id, g in usage.groups.items()
                    },
                }
                for key, usage in self.periods.items()
            },
        }


def calculate_resource_stats(
    limits: Iterable[Tuple[int, Optional[float]]],
    usage: Iterable[Tuple[Optional[int], int, datetime]],
    now: datetime,
) -> ResourceStats:
    """
    Build quota statistics from raw usage rows.

    Args:
        limits: (group_id, percentage_limit) for each of the user's groups;
            a None limit counts as 0
        usage: (resource_group_id, duration_seconds, completed_at) rows
            covering at least the longest period
        now: end of every trailing window

    Percentages and remaining_6m are rounded to 2 decimals. A period in
    which a group has no activity never counts as over its limit.
    """
    group_limits = {
        group_id: GroupLimit(limit=limit or 0, remaining_6m=limit or 0)
        for group_id, limit in limits
    }
    usage = list(usage)

    periods: Dict[str, PeriodUsage] = {}
    for period in PERIODS:
        start = now - timedelta(days=period.days)
        by_group: Dict[int, int] = {}
        total = 0
        for group_id, duration, completed_at in usage:
            if completed_at < start or completed_at > now:
                continue
            total += duration
            if group_id is not None:
                by_group[group_id] = by_group.get(group_id, 0) + duration

        period_usage = PeriodUsage(total_duration=total)
        for group_id, duration in by_group.items():
            percentage = round(duration / total * 100, 2) if total > 0 else 0.0
            period_usage.groups[group_id] = GroupUsage(duration=duration, percentage=percentage)

            group_limit = group_limits.get(group_id)
            if group_limit is None:
                # Deleted group; records still count towards the total
                continue
            if percentage > group_limit.limit:
                group_limit.over_limit_periods += 1
            if period.key == SIX_MONTHS:
                group_limit.remaining_6m = round(group_limit.limit - percentage, 2)

        periods[period.key] = period_usage

    for group_limit in group_limits.values():
        group_limit.warning = group_limit.over_limit_periods > 0

    return ResourceStats(group_limits=group_limits, periods=periods)


class ResourceQuotaCalculator:
    """Loads a user's groups and recent usage and computes ResourceStats."""

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        work_records: Optional[WorkRecordRepository] = None,
    ):
        self.users = users or get_user_repository()
        self.work_records = work_records or get_work_record_repository()

    async def stats(self, user_id: int, now: Optional[datetime] = None) -> ResourceStats:
        now = now or get_local_now()
        groups = await self.users.get_resource_groups(user_id)
        usage: List[Tuple[Optional[int], int, datetime]] = await self.work_records.get_usage_since(
            user_id, now - timedelta(days=MAX_PERIOD_DAYS), now
        )

        stats = calculate_resource_stats(
            [(g.id, g.percentage_limit) for g in groups], usage, now
        )
        logger.debug(
            f"Resource stats for user {user_id}: {len(groups)} groups, {len(usage)} records"
        )
        return stats


_quota_calculator: Optional[ResourceQuotaCalculator] = None


def get_quota_calculator() -> ResourceQuotaCalculator:
    """Get the resource quota calculator singleton."""
    global _quota_calculator
    if _quota_calculator is None:
        _quota_calculator = ResourceQuotaCalculator()
    return _quota_calculator
