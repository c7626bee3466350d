"""Tests for core/concurrency.py."""

import asyncio
import random

import pytest

from dolphin_mcp.core.concurrency import TaskResult, map_with_concurrency


class _Tracker:
    """Records the high-water mark of concurrently running mapper calls."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0

    async def run(self, value: int, delay: float) -> int:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(delay)
            return value * 2
        finally:
            self.active -= 1


class TestOrdering:
    """Results come back in input order."""

    @pytest.mark.asyncio
    async def test_results_match_input_positions_with_random_delays(self):
        """result[i].index == i regardless of completion order."""
        rng = random.Random(42)
        items = list(range(25))
        delays = [rng.uniform(0, 0.02) for _ in items]

        async def mapper(item: int, index: int) -> int:
            await asyncio.sleep(delays[index])
            return item * 10

        results = await map_with_concurrency(items, mapper, max_concurrent=4)

        assert len(results) == len(items)
        for i, result in enumerate(results):
            assert result.index == i
            assert result.success
            assert result.data == i * 10

    @pytest.mark.asyncio
    async def test_empty_input_returns_empty_list(self):
        """No items produce no results and no mapper calls."""
        calls = []

        async def mapper(item: int, index: int) -> int:
            calls.append(index)
            return item

        assert await map_with_concurrency([], mapper) == []
        assert calls == []


class TestConcurrencyBound:
    """At most max(1, C) mapper calls run at once."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("limit", "expected_peak"), [(3, 3), (1, 1), (0, 1), (-5, 1)])
    async def test_peak_never_exceeds_limit(self, limit: int, expected_peak: int):
        """Concurrency high-water mark respects the floor-to-one limit."""
        tracker = _Tracker()
        results = await map_with_concurrency(
            list(range(12)),
            lambda item, _i: tracker.run(item, 0.005),
            max_concurrent=limit,
        )
        assert all(r.success for r in results)
        assert tracker.peak == expected_peak

    @pytest.mark.asyncio
    async def test_limit_larger_than_input(self):
        """A limit above N runs everything at once, never more than N."""
        tracker = _Tracker()
        await map_with_concurrency(
            list(range(5)), lambda item, _i: tracker.run(item, 0.005), max_concurrent=100
        )
        assert tracker.peak == 5


class TestFailureIsolation:
    """A failing item never aborts its siblings."""

    @pytest.mark.asyncio
    async def test_failed_positions_keep_error(self):
        """Failing positions report the error; others keep their data."""

        async def mapper(item: int, index: int) -> int:
            await asyncio.sleep(0)
            if index in (1, 3):
                raise ValueError(f"boom {index}")
            return item + 100

        results = await map_with_concurrency([0, 1, 2, 3, 4], mapper, max_concurrent=2)

        assert [r.success for r in results] == [True, False, True, False, True]
        assert results[1].data is None
        assert str(results[1].error) == "boom 1"
        assert str(results[3].error) == "boom 3"
        assert [r.data for r in results if r.success] == [100, 102, 104]

    @pytest.mark.asyncio
    async def test_immediate_raise_is_captured(self):
        """A mapper that raises before its first await is captured the same way."""

        async def mapper(item: int, _index: int) -> int:
            raise RuntimeError("sync failure")

        results = await map_with_concurrency([1], mapper)
        assert results == [TaskResult(index=0, success=False, error=results[0].error)]
        assert isinstance(results[0].error, RuntimeError)


class TestProgress:
    """on_progress is called once per completed item."""

    @pytest.mark.asyncio
    async def test_completed_counts_are_monotonic(self):
        """completed runs 1..N in order and total is always N."""
        seen: list[tuple[int, int]] = []

        async def mapper(item: int, _index: int) -> int:
            await asyncio.sleep(0.001 * (7 - item))
            return item

        await map_with_concurrency(
            list(range(7)), mapper, max_concurrent=3, on_progress=lambda c, t: seen.append((c, t))
        )

        assert [c for c, _ in seen] == list(range(1, 8))
        assert {t for _, t in seen} == {7}

    @pytest.mark.asyncio
    async def test_no_progress_for_empty_input(self):
        """on_progress is never called for N=0."""
        seen = []

        async def mapper(item: int, _index: int) -> int:
            return item

        await map_with_concurrency([], mapper, on_progress=lambda c, t: seen.append(c))
        assert seen == []

    @pytest.mark.asyncio
    async def test_failures_count_as_completed(self):
        """Failed items still advance progress."""
        seen = []

        async def mapper(item: int, _index: int) -> int:
            raise ValueError("nope")

        await map_with_concurrency([1, 2, 3], mapper, on_progress=lambda c, t: seen.append(c))
        assert seen == [1, 2, 3]


class TestCancellation:
    """Cancelling the caller cancels in-flight work."""

    @pytest.mark.asyncio
    async def test_cancel_propagates_and_stops_tasks(self):
        """CancelledError is not captured; running mapper calls are cancelled."""
        cancelled = []
        started = asyncio.Event()

        async def mapper(item: int, index: int) -> int:
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(index)
                raise
            return item

        task = asyncio.create_task(map_with_concurrency([1, 2, 3], mapper, max_concurrent=2))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(cancelled) == [0, 1]
