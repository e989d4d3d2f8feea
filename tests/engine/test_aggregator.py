"""
Tests for the per-phase aggregator.
"""

from __future__ import annotations

import asyncio

import pytest

from hostsweep.engine.aggregator import Aggregator


@pytest.mark.asyncio
async def test_drain_sorts_case_insensitively() -> None:
    aggregator: Aggregator[str] = Aggregator(key=lambda name: name)
    for name in ("web2", "DB1", "app1", "Web1"):
        aggregator.add(name)

    assert len(aggregator) == 4
    assert aggregator.drain() == ["app1", "DB1", "Web1", "web2"]


@pytest.mark.asyncio
async def test_concurrent_producers_lose_nothing() -> None:
    aggregator: Aggregator[str] = Aggregator(key=lambda name: name)

    async def _produce(index: int) -> None:
        await asyncio.sleep(0.001 * (index % 5))
        aggregator.add(f"host{index:03d}")

    await asyncio.gather(*(_produce(i) for i in range(50)))

    drained = aggregator.drain()
    assert len(drained) == 50
    assert drained == sorted(drained)


@pytest.mark.asyncio
async def test_add_after_drain_rejected() -> None:
    aggregator: Aggregator[str] = Aggregator(key=lambda name: name, name="phase1")
    aggregator.add("db1")
    aggregator.drain()

    with pytest.raises(RuntimeError, match="phase1"):
        aggregator.add("late")


@pytest.mark.asyncio
async def test_drain_twice_rejected() -> None:
    aggregator: Aggregator[str] = Aggregator(key=lambda name: name)
    assert aggregator.drain() == []
    with pytest.raises(RuntimeError):
        aggregator.drain()
