"""Tests for the concurrency limiter (limiter.py)."""

from __future__ import annotations

import asyncio
import random

import pytest

from pds_a11y.limiter import DEFAULT_LIMIT, ConcurrencyLimiter


class TestBound:
    async def test_never_admits_more_than_limit_under_high_fan_out(self):
        limiter = ConcurrencyLimiter(6)
        rng = random.Random(1234)
        active = 0
        max_active = 0

        async def task(delay: float) -> None:
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(delay)
            active -= 1

        delays = [rng.uniform(0, 0.005) for _ in range(300)]
        await asyncio.gather(*(limiter.run(lambda d=d: task(d)) for d in delays))

        assert max_active <= 6
        assert limiter.peak == 6
        assert limiter.in_flight == 0
        assert limiter.waiting == 0

    async def test_default_limit(self):
        assert ConcurrencyLimiter().limit == DEFAULT_LIMIT == 6

    async def test_starts_immediately_below_limit(self):
        limiter = ConcurrencyLimiter(2)
        gate = asyncio.Event()
        started: list[int] = []

        async def task(n: int) -> int:
            started.append(n)
            await gate.wait()
            return n

        runs = [asyncio.create_task(limiter.run(lambda n=n: task(n))) for n in range(3)]
        await asyncio.sleep(0)

        assert started == [0, 1]
        assert limiter.in_flight == 2
        assert limiter.waiting == 1

        gate.set()
        assert await asyncio.gather(*runs) == [0, 1, 2]

    @pytest.mark.parametrize("limit", [0, -3])
    def test_rejects_non_positive_limit(self, limit: int):
        with pytest.raises(ValueError, match="at least 1"):
            ConcurrencyLimiter(limit)


class TestFifo:
    async def test_waiters_released_in_arrival_order(self):
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()
        order: list[int] = []

        async def holder() -> None:
            await gate.wait()

        async def task(n: int) -> None:
            order.append(n)

        first = asyncio.create_task(limiter.run(holder))
        await asyncio.sleep(0)
        waiters = []
        for n in range(5):
            waiters.append(asyncio.create_task(limiter.run(lambda n=n: task(n))))
            await asyncio.sleep(0)

        assert limiter.waiting == 5
        gate.set()
        await asyncio.gather(first, *waiters)

        assert order == [0, 1, 2, 3, 4]

    async def test_newcomer_does_not_overtake_queued_waiter(self):
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()
        order: list[str] = []

        async def holder() -> None:
            await gate.wait()

        async def record(name: str) -> None:
            order.append(name)

        first = asyncio.create_task(limiter.run(holder))
        await asyncio.sleep(0)
        queued = asyncio.create_task(limiter.run(lambda: record("queued")))
        await asyncio.sleep(0)

        gate.set()
        await first
        # The slot was handed to the queued waiter, so a fresh caller must wait.
        await limiter.run(lambda: record("newcomer"))
        await queued

        assert order == ["queued", "newcomer"]


class TestFailureAndCancellation:
    async def test_exception_propagates_and_frees_slot(self):
        limiter = ConcurrencyLimiter(1)

        async def boom() -> None:
            raise RuntimeError("upstream exploded")

        async def ok() -> str:
            return "ok"

        with pytest.raises(RuntimeError, match="upstream exploded"):
            await limiter.run(boom)

        assert limiter.in_flight == 0
        assert await limiter.run(ok) == "ok"

    async def test_cancelled_waiter_does_not_consume_a_slot(self):
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()

        async def holder() -> None:
            await gate.wait()

        async def ok() -> str:
            return "ok"

        first = asyncio.create_task(limiter.run(holder))
        await asyncio.sleep(0)
        doomed = asyncio.create_task(limiter.run(ok))
        await asyncio.sleep(0)
        survivor = asyncio.create_task(limiter.run(ok))
        await asyncio.sleep(0)

        doomed.cancel()
        with pytest.raises(asyncio.CancelledError):
            await doomed
        assert limiter.waiting == 1

        gate.set()
        await first
        assert await survivor == "ok"
        assert limiter.in_flight == 0

    async def test_cancel_after_handoff_passes_slot_on(self):
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()

        async def holder() -> None:
            await gate.wait()

        async def ok() -> str:
            return "ok"

        first = asyncio.create_task(limiter.run(holder))
        await asyncio.sleep(0)
        handed = asyncio.create_task(limiter.run(ok))
        await asyncio.sleep(0)
        last = asyncio.create_task(limiter.run(ok))
        await asyncio.sleep(0)

        gate.set()
        await asyncio.sleep(0)
        # ``first`` has finished and handed its slot over; ``handed`` has not resumed yet.
        assert first.done()
        handed.cancel()
        with pytest.raises(asyncio.CancelledError):
            await handed

        assert await last == "ok"
        assert limiter.in_flight == 0
