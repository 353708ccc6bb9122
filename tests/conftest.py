"""
Pytest configuration and shared fixtures.

Database-backed tests run against a throwaway SQLite file so the real
repositories, upserts and transactions are exercised.
"""

from datetime import date
from types import SimpleNamespace

import pytest
import pytest_asyncio

from quota_engine.database.connection import Database
from quota_engine.database.repositories import (
    UserRepository,
    WorkRecordRepository,
    TaskRepository,
    InstanceRepository,
    DailyAnalyticsRepository,
    TaskPriorityRepository,
    CronJobLogRepository,
)
from quota_engine.analytics.daily_aggregator import DailyAggregator
from quota_engine.analytics.backfill import BackfillManager
from quota_engine.analytics.resource_quota import ResourceQuotaCalculator
from quota_engine.analytics.priority import PriorityScorer
from quota_engine.cache import MemoryCache
from quota_engine.utils.background_tasks import wait_for_background_tasks


@pytest_asyncio.fixture
async def database(tmp_path):
    """Initialized SQLite database, closed after the test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'quota.db'}")
    assert await db.initialize()
    yield db
    await wait_for_background_tasks(timeout=10)
    await db.close()


@pytest.fixture
def repos(database):
    """Every repository bound to the test database."""
    return SimpleNamespace(
        users=UserRepository(database),
        work_records=WorkRecordRepository(database),
        tasks=TaskRepository(database),
        instances=InstanceRepository(database),
        daily_analytics=DailyAnalyticsRepository(database),
        priorities=TaskPriorityRepository(database),
        cron_log=CronJobLogRepository(database),
    )


@pytest.fixture
def cache():
    return MemoryCache(default_ttl=60)


@pytest.fixture
def aggregator(repos):
    return DailyAggregator(
        work_records=repos.work_records,
        instances=repos.instances,
        daily_analytics=repos.daily_analytics,
    )


@pytest.fixture
def backfill(repos, aggregator, cache):
    return BackfillManager(
        aggregator=aggregator,
        daily_analytics=repos.daily_analytics,
        cron_log=repos.cron_log,
        users=repos.users,
        cache=cache,
    )


@pytest.fixture
def scorer(repos):
    return PriorityScorer(
        quota_calculator=ResourceQuotaCalculator(users=repos.users, work_records=repos.work_records),
        tasks=repos.tasks,
        priorities=repos.priorities,
    )


@pytest_asyncio.fixture
async def user_id(repos):
    user = await repos.users.create_user(name="Test User", email="test@example.com")
    return user.id


@pytest.fixture
def day():
    """A fixed calendar day used by most scenarios."""
    return date(2026, 3, 10)

