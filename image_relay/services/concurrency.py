"""
Concurrency Limiter Service

Counting admission gate bounding how many forwards to the platform run at once.
"""

import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class Permit:
    """One unit of admission capacity, released exactly once."""

    __slots__ = ("permit_id",)

    def __init__(self, permit_id: int):
        self.permit_id = permit_id

    def __repr__(self) -> str:
        return f"Permit({self.permit_id})"


class ConcurrencyLimiter:
    """
    Bounded counting semaphore for upstream forwards.

    ``acquire`` suspends only the calling task while all slots are taken.
    Waiters are woken in arrival order by asyncio.Semaphore.
    """

    def __init__(self, max_concurrent: int):
        """
        Initialize limiter.

        Args:
            max_concurrent: Number of forwards allowed to run simultaneously
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.capacity = max_concurrent
        self.peak = 0
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._held: set[int] = set()
        self._ids = itertools.count(1)

    @property
    def in_flight(self) -> int:
        return len(self._held)

    async def acquire(self) -> Permit:
        """Wait for a free slot and return its permit."""
        if self._semaphore.locked():
            logger.debug(f"Upload slots exhausted ({self.capacity}), waiting")

        await self._semaphore.acquire()

        permit = Permit(next(self._ids))
        self._held.add(permit.permit_id)
        self.peak = max(self.peak, len(self._held))
        logger.debug(f"Acquired {permit}: {self.in_flight}/{self.capacity} in flight")
        return permit

    def release(self, permit: Permit) -> None:
        """
        Return a permit's slot.

        Raises:
            RuntimeError: If the permit was already released or not issued here
        """
        if permit.permit_id not in self._held:
            raise RuntimeError(f"{permit} is not held by this limiter")

        self._held.remove(permit.permit_id)
        self._semaphore.release()
        logger.debug(f"Released {permit}: {self.in_flight}/{self.capacity} in flight")

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Permit]:
        """Hold one slot for the duration of the block."""
        permit = await self.acquire()
        try:
            yield permit
        finally:
            self.release(permit)

    def status(self) -> dict:
        return {
            "capacity": self.capacity,
            "in_flight": self.in_flight,
            "peak": self.peak,
        }
