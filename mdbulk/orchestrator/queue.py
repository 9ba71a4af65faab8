"""Bounded-concurrency queue runner."""
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Iterable, Set, TypeVar
import asyncio
import logging

from ..models import DEFAULT_MAX_CONCURRENT

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueueHandler = Callable[[T, Deque[T]], Awaitable[Any]]


@dataclass
class QueueStats:
    """Counters collected while draining a queue."""
    dispatched: int = 0
    completed: int = 0
    failed: int = 0
    peak_in_flight: int = 0


async def process_queue(
    items: Iterable[T],
    handler: QueueHandler,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
) -> QueueStats:
    """
    Drain a FIFO work queue with at most ``max_concurrent`` tasks in flight.

    ``handler(item, queue)`` receives the live queue and may append work it
    discovers; appended items are dispatched in turn. A task is removed from
    the running set as soon as it settles, whatever its outcome.

    The first failure aborts the run: the other in-flight tasks are cancelled
    and the exception propagates. Nothing is retried.

    Args:
        items: Initial work items
        handler: Coroutine function called once per item
        max_concurrent: Upper bound on simultaneously running tasks

    Returns:
        QueueStats for the run

    Raises:
        ValueError: if max_concurrent < 1
    """
    if max_concurrent < 1:
        raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

    queue: Deque[T] = items if isinstance(items, deque) else deque(items)
    running: Set[asyncio.Task] = set()
    stats = QueueStats()

    try:
        while queue or running:
            if len(running) < max_concurrent and queue:
                item = queue.popleft()
                task = asyncio.create_task(handler(item, queue))
                running.add(task)
                stats.dispatched += 1
                stats.peak_in_flight = max(stats.peak_in_flight, len(running))
                continue

            done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            running.difference_update(done)

            error = None
            for task in done:
                exc = task.exception()
                if exc is None:
                    stats.completed += 1
                else:
                    stats.failed += 1
                    error = error or exc
            if error is not None:
                logger.error(
                    f"Queue aborted after {stats.dispatched} dispatched task(s): "
                    f"{type(error).__name__}: {error}"
                )
                raise error
    finally:
        if running:
            for task in running:
                task.cancel()
            await asyncio.gather(*running, return_exceptions=True)

    logger.debug(
        f"Queue drained: {stats.completed} completed, peak {stats.peak_in_flight} in flight"
    )
    return stats
