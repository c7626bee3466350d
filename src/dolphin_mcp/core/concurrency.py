"""Bounded-parallel async map with ordered, per-item results.

Runs an async mapper over a sequence while keeping at most ``max_concurrent``
invocations in flight. Results come back in input order regardless of which
task finishes first, and a failing item never aborts its siblings.

Usage::

    results = await map_with_concurrency(
        paths,
        fetch_one,
        max_concurrent=4,
        on_progress=lambda done, total: log.debug("progress", done=done, total=total),
    )
    for r in results:
        if r.success:
            use(r.data)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_CONCURRENT = 8

ProgressFn = Callable[[int, int], None]


@dataclass(slots=True)
class TaskResult(Generic[R]):
    """Outcome of one mapped item.

    Exactly one of ``data``/``error`` is meaningful, depending on ``success``.
    """

    index: int
    success: bool
    data: R | None = None
    error: Exception | None = None


async def map_with_concurrency(
    items: Sequence[T],
    mapper: Callable[[T, int], Awaitable[R]],
    *,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    on_progress: ProgressFn | None = None,
) -> list[TaskResult[R]]:
    """Map *items* through *mapper* with at most *max_concurrent* in flight.

    Args:
        items: Items to process. Read, never mutated.
        mapper: ``async (item, index) -> R``. May raise; the exception is
            captured in that item's ``TaskResult``.
        max_concurrent: Cap on simultaneously running mapper calls. Values
            below 1 are treated as 1.
        on_progress: Called once per completed item with
            ``(completed, total)``; ``completed`` runs 1..N.

    Returns:
        One ``TaskResult`` per input item, ``results[i].index == i``.
    """
    total = len(items)
    if total == 0:
        return []

    limit = max(1, max_concurrent)
    results: list[TaskResult[R] | None] = [None] * total
    in_flight: set[asyncio.Task[TaskResult[R]]] = set()
    next_index = 0
    completed = 0

    async def run_one(index: int) -> TaskResult[R]:
        try:
            data = await mapper(items[index], index)
        except Exception as exc:
            return TaskResult(index=index, success=False, error=exc)
        return TaskResult(index=index, success=True, data=data)

    def start_next() -> None:
        nonlocal next_index
        in_flight.add(asyncio.create_task(run_one(next_index)))
        next_index += 1

    try:
        while next_index < min(limit, total):
            start_next()

        while in_flight:
            done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                in_flight.discard(task)
                result = task.result()
                results[result.index] = result
                completed += 1
                if on_progress is not None:
                    on_progress(completed, total)
                if next_index < total:
                    start_next()
    finally:
        # Only reached with tasks left when the caller was cancelled
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

    return [r for r in results if r is not None]
