"""
Deadline guard for upstream calls.

Upstream clients give us no cooperative cancellation, so a call that blows
its budget is reported as failed but left running. Its eventual outcome is
consumed and dropped.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from utils.error_handling import UpstreamTimeoutError
from utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _discard_outcome(task: asyncio.Future) -> None:
    """Retrieve a late result so asyncio does not warn about it."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(
            "Late upstream failure discarded", extra={"error": str(exc)}
        )


async def guard(operation: Awaitable[T], budget_seconds: float, label: str) -> T:
    """
    Await ``operation`` for at most ``budget_seconds``.

    Raises UpstreamTimeoutError tagged with ``label`` when the deadline
    passes first. Errors raised by the operation itself propagate unchanged.
    """
    task = asyncio.ensure_future(operation)
    done, _ = await asyncio.wait({task}, timeout=budget_seconds)
    if task in done:
        return task.result()

    task.add_done_callback(_discard_outcome)
    logger.warning(
        "Upstream call timed out",
        extra={"label": label, "budget_ms": int(budget_seconds * 1000)},
    )
    raise UpstreamTimeoutError(label, budget_seconds)
