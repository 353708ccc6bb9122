"""Unit tests for fire-and-forget background tasks."""

import asyncio
import logging

import pytest

from quota_engine.utils.background_tasks import (
    create_safe_task,
    safe_background_task,
    pending_background_tasks,
    wait_for_background_tasks,
)


async def _value(v):
    return v


async def _fail():
    raise RuntimeError("recompute failed")


@pytest.mark.asyncio
async def test_safe_background_task_returns_result():
    assert await safe_background_task(_value(3), "value") == 3


@pytest.mark.asyncio
async def test_safe_background_task_logs_and_swallows(caplog):
    with caplog.at_level(logging.ERROR):
        result = await safe_background_task(_fail(), "daily-analytics-1")

    assert result is None
    assert "daily-analytics-1" in caplog.text
    assert "recompute failed" in caplog.text


@pytest.mark.asyncio
async def test_created_task_is_tracked_until_done():
    release = asyncio.Event()

    async def blocked():
        await release.wait()
        return "done"

    task = create_safe_task(blocked(), "blocked")
    assert pending_background_tasks() >= 1

    release.set()
    await wait_for_background_tasks(timeout=5)

    assert task.result() == "done"
    assert task not in asyncio.all_tasks()


@pytest.mark.asyncio
async def test_wait_gives_up_after_timeout():
    release = asyncio.Event()

    async def never():
        await release.wait()

    task = create_safe_task(never(), "never")
    await wait_for_background_tasks(timeout=0.05)

    assert not task.done()
    release.set()
    await task
