"""
Bounded fan-out/fan-in over a fixed pool of asyncio workers.

Workers pull (index, task) pairs from one shared queue and write each result
into its own slot, so the returned list follows submission order no matter
which task finishes first. When tasks fail, the one submitted earliest is the
error that propagates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from mastrfetch.errors import Cancelled
from mastrfetch.services.cancellation import CancelToken

log = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


def _consume(fut: asyncio.Future) -> None:
    # workers left running after the first failure report nothing further
    if not fut.cancelled():
        fut.exception()


async def run_bounded(
    tasks: Sequence[Task],
    max_concurrency: int,
    cancel_token: CancelToken | None = None,
    on_failure: Optional[Callable[[BaseException], object]] = None,
) -> list[T]:
    """
    Run `tasks` with at most `max_concurrency` in flight.

    on_failure: called with the first error before the scheduler raises. The
    scheduler then waits for the remaining workers to unwind, so the hook is
    where callers stop siblings (e.g. by cancelling the shared token).
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
    if not tasks:
        return []

    queue: asyncio.Queue[tuple[int, Task]] = asyncio.Queue()
    for item in enumerate(tasks):
        queue.put_nowait(item)

    results: list = [None] * len(tasks)
    failed = False
    failures: dict[int, BaseException] = {}

    async def worker() -> None:
        nonlocal failed
        while not failed:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                index, task = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[index] = await task()
            except Exception as e:
                failures.setdefault(index, e)
                failed = True
                raise
            except BaseException:
                failed = True
                raise

    n_workers = min(max_concurrency, len(tasks))
    workers = [asyncio.ensure_future(worker()) for _ in range(n_workers)]
    log.debug("scheduler: %d task(s) on %d worker(s)", len(tasks), n_workers)

    done, pending = await asyncio.wait(workers, return_when=asyncio.FIRST_EXCEPTION)
    errors = [f.exception() for f in done if not f.cancelled() and f.exception() is not None]
    if errors:
        first = failures[min(failures)] if failures else errors[0]
        if on_failure is not None:
            on_failure(first)
            await asyncio.gather(*pending, return_exceptions=True)
        else:
            for p in pending:
                p.add_done_callback(_consume)
        raise first
    if any(f.cancelled() for f in done):
        raise Cancelled("scheduler worker cancelled")

    return results
