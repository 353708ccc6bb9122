"""Unit tests for ActivityHooks."""

from datetime import date, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from quota_engine.analytics.hooks import ActivityHooks
from quota_engine.database.exceptions import ValidationError, EntityNotFoundError
from quota_engine.utils.background_tasks import wait_for_background_tasks
from tests.helpers import at

DAY = date(2026, 3, 10)


@pytest.fixture
def hooks(repos, backfill, cache):
    return ActivityHooks(
        work_records=repos.work_records,
        instances=repos.instances,
        backfill=backfill,
        cache=cache,
    )


@pytest.fixture
def mocked_hooks():
    """Hooks with every collaborator mocked."""
    work_records = AsyncMock()
    instances = AsyncMock()
    backfill = Mock()
    backfill.backfill_dates = AsyncMock()
    cache = AsyncMock()
    cache.invalidate_pattern.return_value = 0
    return ActivityHooks(work_records=work_records, instances=instances, backfill=backfill, cache=cache)


@pytest.mark.asyncio
async def test_create_work_record_recomputes_its_day(repos, hooks, user_id):
    await hooks.create_work_record(user_id, "Focus", 1500, completed_at=at(DAY))
    await wait_for_background_tasks(timeout=10)

    row = await repos.daily_analytics.get(user_id, DAY)
    assert row.total_work_duration == 1500


@pytest.mark.asyncio
async def test_moving_record_recomputes_old_and_new_day(repos, hooks, user_id):
    record = await hooks.create_work_record(user_id, "Focus", 1500, completed_at=at(DAY))
    await wait_for_background_tasks(timeout=10)

    new_day = DAY + timedelta(days=2)
    await hooks.update_work_record(user_id, record.id, {"completed_at": at(new_day)})
    await wait_for_background_tasks(timeout=10)

    assert (await repos.daily_analytics.get(user_id, DAY)).total_work_duration == 0
    assert (await repos.daily_analytics.get(user_id, new_day)).total_work_duration == 1500


@pytest.mark.asyncio
async def test_delete_work_record_zeroes_day(repos, hooks, user_id):
    record = await hooks.create_work_record(user_id, "Focus", 1500, completed_at=at(DAY))
    await hooks.delete_work_record(user_id, record.id)
    await wait_for_background_tasks(timeout=10)

    assert await repos.work_records.get_by_id(record.id, user_id) is None
    assert (await repos.daily_analytics.get(user_id, DAY)).total_work_duration == 0


@pytest.mark.asyncio
async def test_complete_meeting_recomputes_scheduled_day(repos, hooks, user_id):
    meeting = await repos.instances.create_meeting(user_id, "Planning")
    instance = await repos.instances.create_meeting_instance(user_id, meeting.id, DAY)

    await hooks.complete_meeting_instance(user_id, instance.id, at(DAY, 10), at(DAY, 10, 45))
    await wait_for_background_tasks(timeout=10)

    row = await repos.daily_analytics.get(user_id, DAY)
    assert row.meeting_count == 1
    assert row.total_meeting_duration == 45 * 60


@pytest.mark.asyncio
async def test_routine_status_change_recomputes_scheduled_day(repos, hooks, user_id):
    task = await repos.tasks.create_routine_task(user_id, "Stretch")
    instance = await repos.instances.create_routine_instance(user_id, task.id, DAY)

    await hooks.set_routine_instance_status(user_id, instance.id, "completed", completed_at=at(DAY, 8))
    await wait_for_background_tasks(timeout=10)

    row = await repos.daily_analytics.get(user_id, DAY)
    assert (row.routine_completed, row.routine_total) == (1, 1)


@pytest.mark.asyncio
async def test_mutation_invalidates_user_cache_only(hooks, cache, user_id):
    await cache.set(f"analytics:{user_id}:overview:a", {"v": 1})
    await cache.set("analytics:999:overview:a", {"v": 2})

    await hooks.create_work_record(user_id, "Focus", 60, completed_at=at(DAY))

    assert await cache.get(f"analytics:{user_id}:overview:a") is None
    assert await cache.get("analytics:999:overview:a") == {"v": 2}


@pytest.mark.asyncio
async def test_invalid_duration_schedules_nothing(mocked_hooks):
    mocked_hooks.work_records.create.side_effect = ValidationError("duration_seconds must be positive")

    with pytest.raises(ValidationError):
        await mocked_hooks.create_work_record(1, "Focus", 0)

    await wait_for_background_tasks(timeout=10)
    mocked_hooks.backfill.backfill_dates.assert_not_called()
    mocked_hooks.cache.invalidate_pattern.assert_not_called()


@pytest.mark.asyncio
async def test_missing_record_propagates(mocked_hooks):
    mocked_hooks.work_records.delete.side_effect = EntityNotFoundError("Work record not found: 5")

    with pytest.raises(EntityNotFoundError):
        await mocked_hooks.delete_work_record(1, 5)

    await wait_for_background_tasks(timeout=10)
    mocked_hooks.backfill.backfill_dates.assert_not_called()


@pytest.mark.asyncio
async def test_activity_changed_dedupes_days(mocked_hooks):
    days = await mocked_hooks.activity_changed(7, [DAY, DAY, DAY - timedelta(days=1)])

    assert days == [DAY - timedelta(days=1), DAY]
    mocked_hooks.cache.invalidate_pattern.assert_awaited_once_with("analytics:7:*")

    await wait_for_background_tasks(timeout=10)
    mocked_hooks.backfill.backfill_dates.assert_awaited_once_with(7, days)
    assert mocked_hooks.cache.invalidate_pattern.await_count == 2


def test_cache_defaults_to_backfill_cache(repos, backfill, cache):
    hooks = ActivityHooks(work_records=repos.work_records, instances=repos.instances, backfill=backfill)

    assert hooks.cache is cache


@pytest.mark.asyncio
async def test_cache_cleared_again_after_recompute(hooks, cache, user_id):
    await hooks.create_work_record(user_id, "Focus", 60, completed_at=at(DAY))
    # Written after the first invalidation, before the recompute commits
    await cache.set(f"analytics:{user_id}:overview:a", {"stale": True})

    await wait_for_background_tasks(timeout=10)

    assert await cache.get(f"analytics:{user_id}:overview:a") is None
