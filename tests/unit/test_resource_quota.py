"""Unit tests for the resource quota calculator."""

from datetime import datetime, timedelta

import pytest

from quota_engine.analytics.resource_quota import calculate_resource_stats, ResourceQuotaCalculator
from tests.helpers import at

NOW = datetime(2026, 3, 10, 12, 0)


def ago(days, hours=0):
    return NOW - timedelta(days=days, hours=hours)


def test_six_month_usage_sets_remaining_and_counts_over_limit():
    stats = calculate_resource_stats(
        [(1, 40)],
        [(1, 500, ago(100)), (None, 500, ago(100))],
        NOW,
    )

    limit = stats.group_limits[1]
    assert limit.remaining_6m == -10
    assert limit.over_limit_periods == 1
    assert limit.warning is True
    assert stats.periods["6M"].groups[1].percentage == 50
    assert stats.periods["90D"].total_duration == 0
    assert stats.periods["90D"].groups == {}


def test_over_limit_counts_only_periods_with_activity():
    # Activity 50 days ago falls in 90D and 6M only
    stats = calculate_resource_stats([(1, 10)], [(1, 3600, ago(50))], NOW)

    assert stats.group_limits[1].over_limit_periods == 2
    for key in ("1D", "3D", "7D", "15D", "30D"):
        assert 1 not in stats.periods[key].groups


def test_every_period_over_limit():
    stats = calculate_resource_stats([(1, 10)], [(1, 60, ago(0, hours=1))], NOW)

    assert stats.group_limits[1].over_limit_periods == 7
    assert stats.group_limits[1].remaining_6m == -90


def test_group_without_activity_keeps_full_quota():
    stats = calculate_resource_stats([(1, 40), (2, 30)], [(1, 100, ago(2))], NOW)

    assert stats.group_limits[2].remaining_6m == 30
    assert stats.group_limits[2].over_limit_periods == 0
    assert stats.group_limits[2].warning is False


def test_unset_limit_is_zero():
    stats = calculate_resource_stats([(1, None)], [(1, 100, ago(2)), (None, 100, ago(2))], NOW)

    assert stats.group_limits[1].limit == 0
    assert stats.group_limits[1].remaining_6m == -50


def test_percentages_rounded_to_two_decimals():
    stats = calculate_resource_stats([(1, 50)], [(1, 1, ago(1)), (None, 2, ago(1))], NOW)

    assert stats.periods["6M"].groups[1].percentage == 33.33
    assert stats.group_limits[1].remaining_6m == 16.67


def test_records_outside_window_ignored():
    stats = calculate_resource_stats([(1, 50)], [(1, 100, ago(181)), (1, 100, NOW + timedelta(minutes=1))], NOW)

    assert stats.periods["6M"].total_duration == 0
    assert stats.group_limits[1].remaining_6m == 50


def test_deleted_group_counts_towards_total_only():
    stats = calculate_resource_stats([(1, 50)], [(1, 100, ago(1)), (99, 300, ago(1))], NOW)

    assert 99 not in stats.group_limits
    assert stats.periods["1D"].total_duration == 400
    assert stats.periods["1D"].groups[1].percentage == 25


def test_to_dict_shape():
    data = calculate_resource_stats([(1, 40)], [(1, 100, ago(1))], NOW).to_dict()

    assert data["group_limits"][1]["remaining_6m"] == -60
    assert data["periods"]["7D"]["groups"][1]["percentage"] == 100


@pytest.mark.asyncio
async def test_stats_reads_groups_and_usage(repos, user_id):
    work = await repos.users.create_resource_group(user_id, "Work", 40)
    await repos.users.create_resource_group(user_id, "Learning", 30)
    now = datetime(2026, 3, 10, 12, 0)
    await repos.work_records.create(user_id, "Deep work", 3000, work.id, at(now.date(), 9))
    await repos.work_records.create(user_id, "Misc", 1000, None, at(now.date(), 8))

    calculator = ResourceQuotaCalculator(users=repos.users, work_records=repos.work_records)
    stats = await calculator.stats(user_id, now=now)

    assert stats.periods["1D"].total_duration == 4000
    assert stats.periods["1D"].groups[work.id].percentage == 75
    assert stats.group_limits[work.id].over_limit_periods == 7
    assert len(stats.group_limits) == 2
