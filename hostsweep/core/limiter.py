"""
Bounded concurrency for probe fan-out.

A :class:`ConcurrencyLimiter` wraps an :class:`asyncio.Semaphore` and keeps
track of how many units are in flight.  The pipeline uses three independent
instances, one per fan-out level (phase-1 hosts, phase-2 hosts, and the
ports of a single host), so worst-case concurrency composes multiplicatively
and predictably.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from hostsweep.core.errors import ConfigurationError

T = TypeVar("T")


class ConcurrencyLimiter:
    """Admit at most ``bound`` concurrently running units of work.

    Additional units wait (they never fail) until a slot frees.  Admission
    order among waiters is unspecified.  Slots are released when the unit
    finishes for any reason, including a timeout raised inside it, so a hung
    remote call cannot starve the limiter beyond its own timeout.

    Usage::

        limiter = ConcurrencyLimiter(16, name="phase2")
        async with limiter:
            ...
        result = await limiter.run(probe_port(host, 443))
    """

    def __init__(self, bound: int, name: str = "limiter") -> None:
        if bound <= 0:
            raise ConfigurationError(
                f"Concurrency bound for {name!r} must be positive, got {bound}"
            )
        self.bound: int = bound
        self.name: str = name
        self._semaphore = asyncio.Semaphore(bound)
        self._in_flight: int = 0
        self._peak: int = 0

    @property
    def in_flight(self) -> int:
        """Number of units currently holding a slot."""
        return self._in_flight

    @property
    def peak(self) -> int:
        """Highest number of simultaneously admitted units seen so far."""
        return self._peak

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self._semaphore.acquire()
        self._in_flight += 1
        if self._in_flight > self._peak:
            self._peak = self._in_flight
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        self._in_flight -= 1
        self._semaphore.release()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* once a slot is available."""
        async with self:
            return await awaitable

    def __repr__(self) -> str:
        return (
            f"ConcurrencyLimiter(name={self.name!r}, bound={self.bound}, "
            f"in_flight={self._in_flight})"
        )
