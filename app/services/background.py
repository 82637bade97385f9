"""
Fire-and-forget helpers for non-critical writes.

Refresh-path saves are allowed to finish after the response has been sent.
Failures are logged and never reach the caller.
"""

import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected
_pending: Set["asyncio.Task[None]"] = set()


async def _run_logged(awaitable: Awaitable[None], description: str) -> None:
    try:
        await awaitable
    except Exception as e:
        logger.warning(f"Background {description} failed: {e}", exc_info=True)


def fire_and_forget(awaitable: Awaitable[None], description: str) -> "asyncio.Task[None]":
    """Schedule an awaitable on the running loop without waiting for it."""
    task = asyncio.create_task(_run_logged(awaitable, description))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain() -> None:
    """Wait for all scheduled background work (shutdown and tests)."""
    while _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
