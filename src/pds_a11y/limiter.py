"""Counting gate that bounds how many outbound calls are in flight at once."""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

# Matches the host platform's ceiling on simultaneous outbound connections.
DEFAULT_LIMIT = 6


class ConcurrencyLimiter:
    """Run awaitables with at most ``limit`` executing at the same time.

    ``asyncio.Semaphore`` is not used because its release only wakes a
    waiter, letting a caller arriving in between take the slot first.

    Callers beyond the limit suspend on a future queued in FIFO order.
    When a task finishes, its slot is handed directly to the oldest
    waiter, so a newcomer can never overtake a queued caller. There is
    no timeout and no priority: a queued caller waits until a slot frees.

    All bookkeeping happens between suspension points of a single event
    loop, so no lock is needed.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self._limit = limit
        self._in_flight = 0
        self._peak = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def peak(self) -> int:
        """Highest number of tasks ever admitted at once."""
        return self._peak

    async def run(self, task_factory: Callable[[], Awaitable[T]]) -> T:
        """Wait for a slot, then await ``task_factory()`` and return its result.

        Exceptions raised by the task propagate unchanged; the slot is
        released either way.
        """
        await self._acquire()
        try:
            return await task_factory()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._in_flight < self._limit and not self._waiters:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The slot was handed over just before the cancel landed.
                self._release()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(fut)
            raise

    def _release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Slot ownership moves to the waiter; in_flight is unchanged.
                fut.set_result(None)
                return
        self._in_flight -= 1
