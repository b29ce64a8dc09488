"""Fire-and-forget coroutines detached from the request that starts them."""
import asyncio
import logging
from typing import Awaitable, Optional, Set

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task):
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}", exc_info=exc)


def spawn_background(coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
    """Schedule a coroutine without awaiting it. Errors are logged only."""
    task = asyncio.ensure_future(coro)
    if name:
        task.set_name(name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain_background_tasks():
    """Wait for pending background tasks (shutdown and tests)."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
