"""
Analytics engine: daily aggregation, quota statistics, sliding windows,
priority scoring and backfill.
"""

from .periods import Period, PERIODS, PERIOD_WEIGHTS, SIX_MONTHS, get_period
from .daily_aggregator import (
    DailyAggregator,
    DailySummary,
    UNASSIGNED_KEY,
    summarize_day,
    get_daily_aggregator,
)
from .sliding_window import DataPoint, window_series
from .resource_quota import (
    ResourceQuotaCalculator,
    ResourceStats,
    GroupLimit,
    calculate_resource_stats,
    get_quota_calculator,
)
from .priority import PriorityScorer, RankedTask, calculate_priority_score, get_priority_scorer
from .backfill import BackfillManager, RangeResult, DAILY_ANALYTICS_JOB, get_backfill_manager
from .recurrence import occurs_on
from .hooks import ActivityHooks
from .service import AnalyticsService

__all__ = [
    "Period",
    "PERIODS",
    "PERIOD_WEIGHTS",
    "SIX_MONTHS",
    "get_period",
    "DailyAggregator",
    "DailySummary",
    "UNASSIGNED_KEY",
    "summarize_day",
    "get_daily_aggregator",
    "DataPoint",
    "window_series",
    "ResourceQuotaCalculator",
    "ResourceStats",
    "GroupLimit",
    "calculate_resource_stats",
    "get_quota_calculator",
    "PriorityScorer",
    "RankedTask",
    "calculate_priority_score",
    "get_priority_scorer",
    "BackfillManager",
    "RangeResult",
    "DAILY_ANALYTICS_JOB",
    "get_backfill_manager",
    "occurs_on",
    "ActivityHooks",
    "AnalyticsService",
]
