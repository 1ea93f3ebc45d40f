"""
Single-slot request serialization for one session.

Cookie state and any login in progress belong to whichever operation
holds the slot. Everyone else waits in FIFO order, or is rejected
straight away when the wait queue is at its bound.
"""

from __future__ import annotations

import asyncio
import collections
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sso_gate.utils import logger
from sso_gate.utils.errors import QueueOverflowError

log = logger.create_logger("SessionGate")

T = TypeVar("T")


class SessionGate:
    """Run submitted operations one at a time, first come first served."""

    def __init__(self, max_pending: int | None = None) -> None:
        """Create an idle gate.

        Args:
            max_pending: Maximum number of waiting callers. ``None``
                queues everybody.
        """
        self._busy = False
        self._waiters: collections.deque[asyncio.Future[None]] = collections.deque()
        self.max_pending = max_pending

    @property
    def max_pending(self) -> int | None:
        """Wait-queue bound; ``None`` means unbounded."""
        return self._max_pending

    @max_pending.setter
    def max_pending(self, value: int | None) -> None:
        if value is not None and value < 0:
            raise ValueError(f"max_pending must be >= 0, got {value}")
        self._max_pending = value

    @property
    def busy(self) -> bool:
        """``True`` while an operation holds the slot."""
        return self._busy

    @property
    def pending(self) -> int:
        """Number of callers waiting for the slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation* once the slot is free and return its result.

        The slot is released exactly once, whether the operation
        returns or raises, and handed straight to the next waiter.

        Raises:
            QueueOverflowError: When the slot is taken and the wait
                queue is already full. The slot is not touched.
        """
        await self._acquire()
        try:
            return await operation()
        finally:
            self._release()

    async def _acquire(self) -> None:
        """Take the slot, waiting in line if it is held."""
        if not self._busy and not self._waiters:
            self._busy = True
            return

        if self._max_pending is not None and self.pending >= self._max_pending:
            log.warn("Rejecting request, queue full", {"pending": self.pending, "maxPending": self._max_pending})
            raise QueueOverflowError(self._max_pending)

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just as we were cancelled.
                self._release()
            else:
                self._remove(waiter)
            raise

    def _remove(self, waiter: asyncio.Future[None]) -> None:
        """Drop a cancelled waiter from the queue."""
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass

    def _release(self) -> None:
        """Hand the slot to the next live waiter, or mark it free."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._busy = False
