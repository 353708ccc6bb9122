"""
Safe background task execution with error handling.

Fire-and-forget work (daily analytics recompute, backfill) runs on the
event loop without blocking the caller. Failures are logged with stack
traces and never propagate to the code that scheduled them.
"""

import asyncio
import logging
from typing import Coroutine, Any, Optional

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: set = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Wrapper for background tasks with error handling.

    Args:
        coro: Coroutine to execute
        task_name: Human-readable task name for logging

    Returns:
        Result of the coroutine if successful, None on error
    """
    try:
        result = await coro
        logger.info(f"Background task completed: {task_name}")
        return result
    except Exception as e:
        logger.error(
            f"Background task failed: {task_name} - {e}",
            exc_info=True
        )
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Create a background task with error handling.

    Args:
        coro: Coroutine to execute
        task_name: Human-readable task name

    Returns:
        asyncio.Task object

    Example:
        task = create_safe_task(
            aggregator.recompute(user_id, day),
            f"daily-analytics-{user_id}-{day}"
        )
    """
    task = asyncio.create_task(
        safe_background_task(coro, task_name)
    )

    # Store reference to prevent garbage collection
    _active_background_tasks.add(task)

    # Remove from tracking when done
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created safe background task: {task_name}")
    return task


def pending_background_tasks() -> int:
    """Number of background tasks still running."""
    return len(_active_background_tasks)


async def wait_for_background_tasks(timeout: Optional[float] = None) -> None:
    """
    Wait until every tracked background task has finished.

    Used on shutdown so scheduled recomputes are not cut off mid-write.
    """
    while _active_background_tasks:
        tasks = list(_active_background_tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} background tasks still running after {timeout}s")
            return
