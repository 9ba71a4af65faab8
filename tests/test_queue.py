"""Tests for the bounded-concurrency queue runner."""
import asyncio
from collections import deque

import pytest

from mdbulk.orchestrator.queue import QueueStats, process_queue


class TestProcessQueue:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 3, 8, 32])
    async def test_runs_every_item_within_limit(self, limit):
        in_flight = 0
        peak = 0
        seen = []

        async def handler(item, queue):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001 * (item % 3))
            seen.append(item)
            in_flight -= 1

        stats = await process_queue(range(20), handler, limit)

        assert sorted(seen) == list(range(20))
        assert peak <= limit
        assert stats.dispatched == 20
        assert stats.completed == 20
        assert stats.failed == 0
        assert stats.peak_in_flight == min(limit, 20)

    @pytest.mark.asyncio
    async def test_empty_queue_completes_immediately(self):
        calls = []

        async def handler(item, queue):
            calls.append(item)

        stats = await process_queue([], handler, 4)

        assert calls == []
        assert stats == QueueStats()

    @pytest.mark.asyncio
    async def test_rejects_non_positive_limit(self):
        async def handler(item, queue):
            pass

        with pytest.raises(ValueError, match="max_concurrent"):
            await process_queue([1], handler, 0)

    @pytest.mark.asyncio
    async def test_handler_can_enqueue_discovered_work(self):
        dispatched = []

        async def handler(item, queue):
            dispatched.append(item)
            if len(item) < 3:
                queue.append(item + "a")
                queue.append(item + "b")

        stats = await process_queue(["r"], handler, 1)

        # one at a time means dispatch is breadth first
        assert dispatched == [
            "r",
            "ra", "rb",
            "raa", "rab", "rba", "rbb",
        ]
        assert stats.dispatched == 7

    @pytest.mark.asyncio
    async def test_enqueued_work_is_dispatched_with_parallelism(self):
        done = []

        async def handler(item, queue):
            await asyncio.sleep(0)
            if item < 50:
                queue.append(item * 2 + 1)
                queue.append(item * 2 + 2)
            done.append(item)

        stats = await process_queue([0], handler, 5)

        assert sorted(done) == list(range(101))
        assert stats.completed == 101
        assert stats.peak_in_flight <= 5

    @pytest.mark.asyncio
    async def test_handler_receives_the_live_queue(self):
        work = deque([1, 2])
        received = []

        async def handler(item, queue):
            received.append(queue)

        await process_queue(work, handler, 2)

        assert all(queue is work for queue in received)
        assert len(work) == 0

    @pytest.mark.asyncio
    async def test_failure_propagates_and_cancels_siblings(self):
        cancelled = set()

        async def handler(item, queue):
            if item == 0:
                await asyncio.sleep(0)
                raise RuntimeError("listing failed")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.add(item)
                raise

        with pytest.raises(RuntimeError, match="listing failed"):
            await process_queue([0, 1, 2, 3], handler, 4)

        assert cancelled == {1, 2, 3}

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self):
        attempts = []

        async def handler(item, queue):
            attempts.append(item)
            raise OSError("disk full")

        with pytest.raises(OSError):
            await process_queue(["only"], handler, 2)

        assert attempts == ["only"]
