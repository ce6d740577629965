"""Tests for ConcurrencyLimiter: cap, FIFO order, slot handoff and release on failure."""

import asyncio

import pytest

from price_inquiry.concurrency import ConcurrencyLimiter


class TestConcurrencyLimiter:
    @pytest.mark.asyncio
    async def test_never_exceeds_cap(self):
        """At most max_concurrent tasks run at the same time."""
        limiter = ConcurrencyLimiter(max_concurrent=2)
        peak = 0

        async def task():
            nonlocal peak
            peak = max(peak, limiter.active)
            await asyncio.sleep(0.01)
            return limiter.active

        results = await asyncio.gather(*(limiter.run(task) for _ in range(6)))

        assert peak == 2
        assert all(r <= 2 for r in results)
        assert limiter.active == 0
        assert limiter.queued == 0

    @pytest.mark.asyncio
    async def test_queued_tasks_start_in_arrival_order(self):
        """Waiting tasks are dispatched FIFO."""
        limiter = ConcurrencyLimiter(max_concurrent=1)
        started = []
        gate = asyncio.Event()

        def make(n):
            async def task():
                started.append(n)
                await gate.wait()
                return n

            return task

        runs = [asyncio.create_task(limiter.run(make(n))) for n in range(4)]
        await asyncio.sleep(0)
        assert started == [0]
        assert limiter.queued == 3

        gate.set()
        assert await asyncio.gather(*runs) == [0, 1, 2, 3]
        assert started == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_releases_slot(self):
        """A raising task frees its slot for the next one."""
        limiter = ConcurrencyLimiter(max_concurrent=1)

        async def boom():
            raise RuntimeError("upstream down")

        async def ok():
            return "ok"

        with pytest.raises(RuntimeError):
            await limiter.run(boom)

        assert limiter.active == 0
        assert await limiter.run(ok) == "ok"

    @pytest.mark.asyncio
    async def test_newcomer_does_not_jump_released_slot(self):
        """A caller arriving as a slot frees up queues behind existing waiters."""
        limiter = ConcurrencyLimiter(max_concurrent=1)
        started = []
        gate = asyncio.Event()

        def make(name):
            async def task():
                started.append(name)
                await gate.wait()
                return name

            return task

        first = asyncio.create_task(limiter.run(make("first")))
        await asyncio.sleep(0)
        waiting = asyncio.create_task(limiter.run(make("waiting")))
        await asyncio.sleep(0)
        assert limiter.queued == 1

        # the slot is released while the newcomer's first step is pending
        gate.set()
        newcomer = asyncio.create_task(limiter.run(make("newcomer")))

        await asyncio.gather(first, waiting, newcomer)
        assert started == ["first", "waiting", "newcomer"]
        assert limiter.active == 0
        assert limiter.queued == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_gives_up_its_place(self):
        """Cancelling a queued caller neither leaks nor blocks a slot."""
        limiter = ConcurrencyLimiter(max_concurrent=1)
        gate = asyncio.Event()

        async def hold():
            await gate.wait()
            return "held"

        async def ok():
            return "ok"

        holder = asyncio.create_task(limiter.run(hold))
        await asyncio.sleep(0)
        cancelled = asyncio.create_task(limiter.run(ok))
        await asyncio.sleep(0)

        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled
        assert limiter.queued == 0

        gate.set()
        assert await holder == "held"
        assert await limiter.run(ok) == "ok"
        assert limiter.active == 0


    def test_rejects_zero_capacity(self):
        """A limiter without slots could never make progress."""
        with pytest.raises(ValueError):
            ConcurrencyLimiter(max_concurrent=0)
