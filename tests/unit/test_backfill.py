"""
Unit tests for BackfillManager.

Range reads with missing days, startup catch-up and the nightly job body.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import select

from quota_engine.analytics.backfill import BackfillManager, DAILY_ANALYTICS_JOB
from quota_engine.analytics.daily_aggregator import DailySummary
from quota_engine.cache import get_analytics_cache
from quota_engine.database.exceptions import BackfillError
from quota_engine.database.models import CronJobLogDB
from quota_engine.utils.background_tasks import wait_for_background_tasks
from tests.helpers import at

TODAY = date(2026, 3, 10)


async def cron_rows(database):
    async with database.session() as session:
        result = await session.execute(
            select(CronJobLogDB).order_by(CronJobLogDB.last_run_date, CronJobLogDB.id)
        )
        return [(r.last_run_date, r.status, r.error_message) for r in result.scalars().all()]


# ============================================================
# ENSURE RANGE
# ============================================================

@pytest.mark.asyncio
async def test_ensure_range_fills_missing_days_then_persists_them(repos, aggregator, backfill, user_id):
    start = date(2026, 3, 1)
    days = [start + timedelta(days=i) for i in range(5)]
    for i, d in enumerate(days):
        await repos.work_records.create(user_id, f"Work {i}", 600 * (i + 1), None, at(d))
    for d in (days[0], days[2], days[4]):
        await aggregator.recompute(user_id, d)

    first = await backfill.ensure_range(user_id, days[0], days[-1])

    assert first.has_gaps is True
    assert first.missing_dates == [days[1], days[3]]
    assert [r.date for r in first.records] == days
    assert [r.total_work_duration for r in first.records] == [600, 1200, 1800, 2400, 3000]

    await wait_for_background_tasks(timeout=10)
    second = await backfill.ensure_range(user_id, days[0], days[-1])

    assert second.has_gaps is False
    assert second.missing_dates == []
    assert second.records[1] == first.records[1]
    assert second.records[3] == first.records[3]


@pytest.mark.asyncio
async def test_ensure_range_without_gaps_schedules_nothing(repos, aggregator, backfill, user_id):
    await aggregator.recompute(user_id, TODAY)
    backfill.schedule_recompute = Mock()

    result = await backfill.ensure_range(user_id, TODAY, TODAY)

    assert result.has_gaps is False
    assert len(result.records) == 1
    backfill.schedule_recompute.assert_not_called()


@pytest.mark.asyncio
async def test_ensure_range_returns_before_background_write(repos, backfill, user_id):
    await repos.work_records.create(user_id, "Focus", 900, None, at(TODAY))

    result = await backfill.ensure_range(user_id, TODAY, TODAY)

    assert result.has_gaps is True
    assert result.records[0].total_work_duration == 900

    await wait_for_background_tasks(timeout=10)
    row = await repos.daily_analytics.get(user_id, TODAY)
    assert row.total_work_duration == 900


@pytest.mark.asyncio
async def test_background_failure_does_not_reach_caller(repos, user_id):
    aggregator = Mock()
    aggregator.compute = AsyncMock(side_effect=lambda uid, d: DailySummary(date=d))
    aggregator.recompute = AsyncMock(side_effect=RuntimeError("disk full"))
    manager = BackfillManager(
        aggregator=aggregator,
        daily_analytics=repos.daily_analytics,
        cron_log=repos.cron_log,
        users=repos.users,
    )

    result = await manager.ensure_range(user_id, TODAY, TODAY)
    await wait_for_background_tasks(timeout=10)

    assert result.has_gaps is True
    aggregator.recompute.assert_awaited_once_with(user_id, TODAY)


def test_schedule_recompute_with_no_dates(backfill):
    assert backfill.schedule_recompute(1, []) is None


# ============================================================
# STARTUP CATCH-UP
# ============================================================

@pytest.mark.asyncio
async def test_on_server_start_without_history_skips(database, repos, backfill, user_id):
    processed = await backfill.on_server_start(today=TODAY)

    assert processed == []
    assert await cron_rows(database) == []
    assert await repos.daily_analytics.get_range(user_id, TODAY - timedelta(days=30), TODAY) == []


@pytest.mark.asyncio
async def test_on_server_start_up_to_date(database, repos, backfill, user_id):
    await repos.cron_log.log(DAILY_ANALYTICS_JOB, TODAY - timedelta(days=1), "completed")

    assert await backfill.on_server_start(today=TODAY) == []
    assert len(await cron_rows(database)) == 1


@pytest.mark.asyncio
async def test_on_server_start_replays_missed_days_for_every_user(database, repos, backfill, user_id):
    other = (await repos.users.create_user(name="Other")).id
    await repos.cron_log.log(DAILY_ANALYTICS_JOB, TODAY - timedelta(days=4), "completed")
    await repos.work_records.create(other, "Focus", 1200, None, at(TODAY - timedelta(days=2)))

    processed = await backfill.on_server_start(today=TODAY)

    expected = [TODAY - timedelta(days=3), TODAY - timedelta(days=2), TODAY - timedelta(days=1)]
    assert processed == expected
    for uid in (user_id, other):
        rows = await repos.daily_analytics.get_range(uid, expected[0], expected[-1])
        assert [r.date for r in rows] == expected
    other_row = await repos.daily_analytics.get(other, TODAY - timedelta(days=2))
    assert other_row.total_work_duration == 1200

    logged = await cron_rows(database)
    assert [(d, s) for d, s, _ in logged[1:]] == [(d, "completed") for d in expected]
    assert await repos.cron_log.get_last_completed_date(DAILY_ANALYTICS_JOB) == TODAY - timedelta(days=1)


@pytest.mark.asyncio
async def test_on_server_start_failure_logs_and_raises(database, repos, user_id):
    await repos.cron_log.log(DAILY_ANALYTICS_JOB, TODAY - timedelta(days=4), "completed")
    aggregator = Mock()
    aggregator.recompute = AsyncMock(side_effect=[None, RuntimeError("connection lost"), None])
    manager = BackfillManager(
        aggregator=aggregator,
        daily_analytics=repos.daily_analytics,
        cron_log=repos.cron_log,
        users=repos.users,
    )

    with pytest.raises(BackfillError) as exc_info:
        await manager.on_server_start(today=TODAY)

    assert exc_info.value.failed_date == TODAY - timedelta(days=2)
    # Third day never attempted
    assert aggregator.recompute.await_count == 2
    logged = await cron_rows(database)
    assert logged[1] == (TODAY - timedelta(days=3), "completed", None)
    assert logged[2][:2] == (TODAY - timedelta(days=2), "failed")
    assert "connection lost" in logged[2][2]
    assert await repos.cron_log.get_last_completed_date(DAILY_ANALYTICS_JOB) == TODAY - timedelta(days=3)


# ============================================================
# NIGHTLY JOB
# ============================================================

@pytest.mark.asyncio
async def test_recalculate_yesterday_for_all_users(database, repos, backfill, user_id, cache):
    yesterday = TODAY - timedelta(days=1)
    await repos.work_records.create(user_id, "Focus", 300, None, at(yesterday))
    await cache.set(f"analytics:{user_id}:overview:x", {"stale": True})

    day = await backfill.recalculate_yesterday_for_all_users(today=TODAY)

    assert day == yesterday
    row = await repos.daily_analytics.get(user_id, yesterday)
    assert row.total_work_duration == 300
    assert await cron_rows(database) == [(yesterday, "completed", None)]
    assert await cache.get(f"analytics:{user_id}:overview:x") is None


def test_default_cache_is_the_shared_analytics_cache():
    manager = BackfillManager(aggregator=Mock(), daily_analytics=Mock(), cron_log=Mock(), users=Mock())

    assert manager.cache is get_analytics_cache()
