"""
Tests for the rate-limited request queue.
"""

import asyncio
import time

import pytest

from sheet_sync.ratelimit import RateLimitedQueue, RequestQueueStopped

# asyncio timers may fire up to one clock tick early
TOLERANCE = 0.01


class TestRateLimitedQueue:

    @pytest.mark.asyncio
    async def test_returns_operation_result(self):
        queue = RateLimitedQueue(delay=0)

        async def operation():
            return "done"

        assert await queue.enqueue(operation) == "done"

    @pytest.mark.asyncio
    async def test_operations_run_in_insertion_order(self):
        queue = RateLimitedQueue(delay=0.001)
        started = []

        def labeled(label):
            async def operation():
                started.append(label)
                await asyncio.sleep(0)
                return label
            return operation

        labels = [f"op-{i}" for i in range(10)]
        results = await asyncio.gather(*(queue.enqueue(labeled(label)) for label in labels))

        assert started == labels
        assert results == labels

    @pytest.mark.asyncio
    async def test_operations_are_spaced_by_delay(self):
        delay = 0.05
        queue = RateLimitedQueue(delay=delay)
        start_times = []

        async def operation():
            start_times.append(time.monotonic())

        begin = time.monotonic()
        await asyncio.gather(*(queue.enqueue(operation) for _ in range(4)))

        # The delay is charged before the first request too
        assert start_times[0] - begin >= delay - TOLERANCE
        for previous, current in zip(start_times, start_times[1:]):
            assert current - previous >= delay - TOLERANCE

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_queue(self):
        queue = RateLimitedQueue(delay=0)
        ran = []

        async def ok(label):
            ran.append(label)
            return label

        async def boom():
            ran.append("boom")
            raise ValueError("bad request")

        results = await asyncio.gather(
            queue.enqueue(lambda: ok("first")),
            queue.enqueue(boom),
            queue.enqueue(lambda: ok("last")),
            return_exceptions=True,
        )

        assert ran == ["first", "boom", "last"]
        assert results[0] == "first"
        assert isinstance(results[1], ValueError)
        assert results[2] == "last"

    @pytest.mark.asyncio
    async def test_single_drain_loop(self):
        queue = RateLimitedQueue(delay=0.01)
        concurrent = 0
        max_concurrent = 0

        async def operation():
            nonlocal concurrent, max_concurrent
            concurrent += 1
            max_concurrent = max(max_concurrent, concurrent)
            await asyncio.sleep(0.005)
            concurrent -= 1

        first = asyncio.create_task(queue.enqueue(operation))
        await asyncio.sleep(0)
        assert queue.is_draining

        await asyncio.gather(first, *(queue.enqueue(operation) for _ in range(3)))

        assert max_concurrent == 1
        assert not queue.is_draining
        assert queue.depth == 0

    @pytest.mark.asyncio
    async def test_queue_restarts_after_going_idle(self):
        queue = RateLimitedQueue(delay=0)

        async def operation():
            return 1

        assert await queue.enqueue(operation) == 1
        await asyncio.sleep(0)
        assert not queue.is_draining
        assert await queue.enqueue(operation) == 1

    @pytest.mark.asyncio
    async def test_cancelled_drain_rejects_waiting_callers(self):
        queue = RateLimitedQueue(delay=0)

        async def cancelled():
            raise asyncio.CancelledError()

        async def operation():
            return "never"

        results = await asyncio.gather(
            queue.enqueue(cancelled),
            queue.enqueue(operation),
            return_exceptions=True,
        )

        assert isinstance(results[0], asyncio.CancelledError)
        assert isinstance(results[1], RequestQueueStopped)
        assert queue.depth == 0
        assert not queue.is_draining

        # A later request starts a fresh drain
        assert await queue.enqueue(operation) == "never"
