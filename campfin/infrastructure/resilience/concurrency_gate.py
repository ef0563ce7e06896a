"""Implementation of a concurrency gate.

Limits the number of requests in flight against the API. Every outbound call
holds one permit from acquisition until its retry loop ends; callers beyond
the limit wait at the gate.
"""

import asyncio
import logging

from campfin.domain.models.common import DEFAULT_CONCURRENCY_LIMIT
from campfin.domain.models.errors import ClientClosedError

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """Counting semaphore with a fixed number of permits."""

    def __init__(self, limit: int = DEFAULT_CONCURRENCY_LIMIT):
        """Initializes the gate.

        Args:
            limit: Maximum number of permits held at the same time.
        """
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._closed = False
        logger.info(f"ConcurrencyGate initialized: {limit} permits")

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def available(self) -> int:
        return self.limit - self._in_flight

    @property
    def saturated(self) -> bool:
        return self._in_flight >= self.limit

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> None:
        """Waits for a permit. Cancellation while waiting leaves the count untouched."""
        if self._closed:
            raise ClientClosedError("Concurrency gate is closed")
        await self._semaphore.acquire()
        if self._closed:
            self._semaphore.release()
            raise ClientClosedError("Concurrency gate is closed")
        self._in_flight += 1
        logger.debug(f"Permit acquired ({self._in_flight}/{self.limit} in flight)")

    def release(self) -> None:
        if self._in_flight == 0:
            raise RuntimeError("ConcurrencyGate.release() called without a held permit")
        self._in_flight -= 1
        self._semaphore.release()
        logger.debug(f"Permit released ({self._in_flight}/{self.limit} in flight)")

    def close(self) -> None:
        """Refuses further acquisitions. Permits already held can still be released."""
        if not self._closed:
            self._closed = True
            logger.debug("ConcurrencyGate closed")

    async def __aenter__(self) -> "ConcurrencyGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
