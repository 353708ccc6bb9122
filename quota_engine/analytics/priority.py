"""
Task priority scoring.

Tasks tied to resource groups with quota headroom rank higher. The 6-month
remaining quota dominates the score; shorter periods fine-tune it and every
period a group is over its limit costs a flat penalty.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .periods import PERIODS, PERIOD_WEIGHTS, SIX_MONTHS
from .recurrence import RecurrenceEvaluator, occurs_on
from .resource_quota import ResourceQuotaCalculator, ResourceStats, get_quota_calculator
from ..database.models import TaskTargetTypeEnum
from ..database.repositories import (
    TaskRepository,
    TaskPriorityRepository,
    get_task_repository,
    get_task_priority_repository,
)
from ..utils.datetime_utils import get_local_now, get_local_today

logger = logging.getLogger(__name__)

OVER_LIMIT_PENALTY = 10000


def calculate_priority_score(resource_group_id: Optional[int], stats: ResourceStats) -> int:
    """
    Score one task against precomputed resource stats.

    Tasks without a group, or whose group is unknown, score 0.
    """
    if resource_group_id is None:
        return 0
    group_limit = stats.group_limits.get(resource_group_id)
    if group_limit is None:
        return 0

    score = group_limit.remaining_6m * PERIOD_WEIGHTS[SIX_MONTHS]

    for period in PERIODS:
        if period.key == SIX_MONTHS:
            continue
        usage = stats.periods.get(period.key)
        group_usage = usage.groups.get(resource_group_id) if usage else None
        if group_usage is not None:
            remaining = group_limit.limit - group_usage.percentage
        else:
            remaining = group_limit.limit
        score += remaining * period.weight

    if group_limit.warning and group_limit.over_limit_periods > 0:
        score -= OVER_LIMIT_PENALTY * group_limit.over_limit_periods

    return round(score)


@dataclass
class RankedTask:
    """An active task with its current priority score."""
    target_type: str
    target_id: int
    title: str
    resource_group_id: Optional[int]
    priority_score: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _rank_key(task: RankedTask):
    return (-task.priority_score, task.target_type, task.target_id)


class PriorityScorer:
    """Refreshes stored priorities and serves the ranked task list."""

    def __init__(
        self,
        quota_calculator: Optional[ResourceQuotaCalculator] = None,
        tasks: Optional[TaskRepository] = None,
        priorities: Optional[TaskPriorityRepository] = None,
        recurrence_evaluator: Optional[RecurrenceEvaluator] = None,
    ):
        self.quota_calculator = quota_calculator or get_quota_calculator()
        self.tasks = tasks or get_task_repository()
        self.priorities = priorities or get_task_priority_repository()
        self.recurrence_evaluator = recurrence_evaluator

    async def refresh_all(self, user_id: int, now: Optional[datetime] = None) -> int:
        """
        Recompute every active task's score and replace the user's
        priority rows with the new set.

        Returns:
            Number of priority rows written
        """
        now = now or get_local_now()
        stats = await self.quota_calculator.stats(user_id, now=now)

        simple_tasks = await self.tasks.get_active_simple_tasks(user_id)
        routine_tasks = await self.tasks.get_active_routine_tasks(user_id)

        priorities = [
            {
                "target_type": TaskTargetTypeEnum.SIMPLE.value,
                "target_id": task.id,
                "priority_score": calculate_priority_score(task.resource_group_id, stats),
            }
            for task in simple_tasks
        ] + [
            {
                "target_type": TaskTargetTypeEnum.ROUTINE.value,
                "target_id": task.id,
                "priority_score": calculate_priority_score(task.resource_group_id, stats),
            }
            for task in routine_tasks
        ]

        count = await self.priorities.replace_all(user_id, priorities, calculated_at=now)
        logger.info(f"Refreshed priorities for user {user_id}: {count} tasks")
        return count

    async def get_sorted_all_tasks(
        self,
        user_id: int,
        today_only: bool = False,
        today: Optional[date] = None,
    ) -> List[RankedTask]:
        """
        List active tasks by priority score, highest first.

        Tasks without a stored priority (created since the last refresh)
        score 0. With today_only, routine tasks whose recurrence rule does
        not occur today are dropped; this needs a recurrence evaluator.
        """
        rows = await self.priorities.get_for_user(user_id)
        scores = {(row.target_type, row.target_id): row.priority_score for row in rows}

        simple_tasks = await self.tasks.get_active_simple_tasks(user_id)
        routine_tasks = await self.tasks.get_active_routine_tasks(user_id)

        if today_only:
            if self.recurrence_evaluator is None:
                logger.warning("today_only requested without a recurrence evaluator, keeping all routines")
            else:
                today = today or get_local_today()
                routine_tasks = [
                    task for task in routine_tasks
                    if occurs_on(self.recurrence_evaluator, task.recurrence_rule, today)
                ]

        ranked = [
            RankedTask(
                target_type=TaskTargetTypeEnum.SIMPLE.value,
                target_id=task.id,
                title=task.title,
                resource_group_id=task.resource_group_id,
                priority_score=scores.get((TaskTargetTypeEnum.SIMPLE.value, task.id), 0),
            )
            for task in simple_tasks
        ] + [
            RankedTask(
                target_type=TaskTargetTypeEnum.ROUTINE.value,
                target_id=task.id,
                title=task.title,
                resource_group_id=task.resource_group_id,
                priority_score=scores.get((TaskTargetTypeEnum.ROUTINE.value, task.id), 0),
            )
            for task in routine_tasks
        ]

        ranked.sort(key=_rank_key)
        return ranked


_priority_scorer: Optional[PriorityScorer] = None


def get_priority_scorer() -> PriorityScorer:
    """Get the priority scorer singleton."""
    global _priority_scorer
    if _priority_scorer is None:
        _priority_scorer = PriorityScorer()
    return _priority_scorer
