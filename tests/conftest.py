"""
Shared pytest fixtures for the hostsweep test suite.

Provides isolated settings (no environment or ``.env`` leakage) and in-memory
fakes for every network collaborator, so pipeline tests never leave the
process.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from hostsweep.config import Settings, get_settings
from hostsweep.core.errors import (
    DeepQueryFailure,
    ExtendedFactsFailure,
    ManagementUnavailable,
    ShareUnavailable,
)
from hostsweep.probes.management import BootFacts


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Make sure no test sees another test's cached settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings() -> Settings:
    """Settings with small bounds and short timeouts, ignoring the environment."""
    return Settings(
        _env_file=None,
        phase1_concurrency=4,
        phase2_concurrency=2,
        port_concurrency=3,
        probe_timeout_ms=200,
        dns_timeout_ms=200,
        ping_timeout_ms=200,
        management_timeout_ms=200,
        share_timeout_ms=200,
        reachability_method="tcp",
    )


@pytest.fixture()
def scan_timestamp() -> datetime:
    return datetime(2024, 5, 1, 8, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeNameResolver:
    """Resolve names from a fixed table and record every lookup."""

    def __init__(self, table: dict[str, str]) -> None:
        self.table = table
        self.calls: list[str] = []

    async def resolve(self, name: str) -> Optional[str]:
        self.calls.append(name)
        await asyncio.sleep(0)
        return self.table.get(name)

    def close(self) -> None:
        pass


class FakeReachability:
    """Report names in ``up`` as reachable; track peak concurrency."""

    def __init__(self, up: set[str], delay: float = 0.0) -> None:
        self.up = up
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.peak = 0

    async def is_reachable(self, name: str) -> bool:
        self.calls.append(name)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return name in self.up


class FakeManagement:
    """Scriptable management client.

    Args:
        identify_ok:  Names whose handshake succeeds.
        inventory_ok: Names whose structured query succeeds.
        boot_facts:   Name -> :class:`BootFacts`; missing names fail.
    """

    def __init__(
        self,
        identify_ok: set[str] = frozenset(),
        inventory_ok: set[str] = frozenset(),
        boot_facts: Optional[dict[str, BootFacts]] = None,
    ) -> None:
        self.identify_ok = set(identify_ok)
        self.inventory_ok = set(inventory_ok)
        self.boot_facts = boot_facts or {}
        self.calls: list[tuple[str, str]] = []

    async def identify(self, host: str) -> None:
        self.calls.append(("identify", host))
        if host not in self.identify_ok:
            raise ManagementUnavailable(host, "handshake refused")

    async def query_inventory(self, host: str) -> None:
        self.calls.append(("query_inventory", host))
        if host not in self.inventory_ok:
            raise DeepQueryFailure(host, "access denied")

    async def query_boot_facts(self, host: str) -> BootFacts:
        self.calls.append(("query_boot_facts", host))
        if host not in self.boot_facts:
            raise ExtendedFactsFailure(host, "remote command failed")
        return self.boot_facts[host]


class FakeShareCheck:
    """Share exists for names in ``available``."""

    def __init__(self, available: set[str] = frozenset()) -> None:
        self.available = set(available)
        self.calls: list[str] = []

    async def check(self, host: str) -> None:
        self.calls.append(host)
        if host not in self.available:
            raise ShareUnavailable(host, "not accessible")


def make_port_scanner(open_ports: dict[str, set[int]]):
    """Build a ``probe_port`` replacement answering from *open_ports* (address -> ports)."""

    async def _answer(host: str, port: int, timeout: float = 2.0) -> bool:
        await asyncio.sleep(0)
        return port in open_ports.get(host, set())

    return _answer
