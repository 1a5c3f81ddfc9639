"""
Bounded Fan-Out
===============

Runs independent per-chunk operations concurrently under a semaphore and
collects each task's outcome. One failed task never cancels the others.

Version: 0.1.0
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from shared.logging import get_logger

logger = get_logger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


@dataclass
class TaskOutcome(Generic[ResultT]):
    """Result or error of one task, keyed by input position."""

    index: int
    value: ResultT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_bounded(
    items: Sequence[ItemT],
    worker: Callable[[ItemT], Awaitable[ResultT]],
    limit: int,
    operation: str = "task",
) -> list[TaskOutcome[ResultT]]:
    """
    Run ``worker`` over ``items`` with at most ``limit`` in flight.

    Args:
        items: Inputs, one task each
        worker: Coroutine function applied to each input
        limit: Maximum concurrent tasks
        operation: Name used in failure logs

    Returns:
        One outcome per input, in input order
    """
    semaphore = asyncio.Semaphore(max(limit, 1))

    async def run(item: ItemT) -> ResultT:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)

    outcomes: list[TaskOutcome[ResultT]] = []
    for index, result in enumerate(results):
        if isinstance(result, Exception):
            logger.warning(
                "fan_out_task_failed",
                operation=operation,
                index=index,
                error=str(result),
                error_type=type(result).__name__,
            )
            outcomes.append(TaskOutcome(index=index, error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(TaskOutcome(index=index, value=result))

    failed = sum(1 for o in outcomes if not o.ok)
    if failed:
        logger.info("fan_out_partial_failure", operation=operation, failed=failed, total=len(items))

    return outcomes
