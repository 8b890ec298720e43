"""Bounded-concurrency mapping over a list of inputs."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..errors import InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def _gather_or_cancel(tasks: List[asyncio.Future]) -> list:
    """Wait for every task; on the first failure cancel the rest and re-raise it."""
    try:
        return await asyncio.gather(*tasks)
    except Exception:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def map_concurrent(
    items: Sequence[T],
    mapper: Callable[[T, int], Awaitable[R]],
    concurrency: Optional[int] = None,
) -> List[R]:
    """
    Run mapper(item, index) for every item with at most `concurrency` calls in flight.

    Results keep the input order. A fixed pool of `concurrency` workers pulls
    from one shared iterator, so a finished call is replaced immediately.

    The first exception raised by a mapper fails the whole call with that
    exception: in-flight siblings are cancelled and awaited, nothing further is
    dispatched, and exceptions raised during that teardown are dropped.

    Args:
        items: Inputs to process
        mapper: Coroutine function called with (item, index)
        concurrency: Maximum outstanding calls, None for unbounded

    Returns:
        List of mapper results in input order

    Raises:
        InvalidArgumentError: concurrency <= 0 (checked only for non-empty input)
    """
    items = list(items)
    if not items:
        return []

    if concurrency is not None and concurrency <= 0:
        raise InvalidArgumentError("Concurrency must be greater than 0")

    if concurrency is None or concurrency >= len(items):
        tasks = [asyncio.ensure_future(mapper(item, index)) for index, item in enumerate(items)]
        return await _gather_or_cancel(tasks)

    results: List[Optional[R]] = [None] * len(items)
    pending = iter(enumerate(items))

    async def worker() -> None:
        for index, item in pending:
            results[index] = await mapper(item, index)

    logger.debug(f"[concurrent] {len(items)} items, {concurrency} workers")
    workers = [asyncio.ensure_future(worker()) for _ in range(concurrency)]
    await _gather_or_cancel(workers)
    return results
