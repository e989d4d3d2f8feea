"""
Phase 1: name resolution and reachability filtering.

For each directory record the resolver tries the primary name, then the
alias, stopping at the first that resolves, and runs exactly one
reachability test against that *name*.  Records that fail either step are
dropped silently; there are no retries.
"""

from __future__ import annotations

from typing import Optional

from hostsweep.core.logging import get_logger
from hostsweep.models.host import HostRecord, ReachableHost
from hostsweep.probes.dns import NameResolver
from hostsweep.probes.reachability import ReachabilityProbe

logger = get_logger(__name__)


class ReachabilityResolver:
    """Turn a :class:`HostRecord` into a :class:`ReachableHost` or nothing.

    Usage::

        resolver = ReachabilityResolver(NameResolver(), ReachabilityProbe())
        reachable = await resolver.resolve(record)
    """

    def __init__(self, names: NameResolver, reachability: ReachabilityProbe) -> None:
        self._names = names
        self._reachability = reachability

    async def resolve(self, record: HostRecord) -> Optional[ReachableHost]:
        """Return the reachable form of *record*, or ``None`` to drop it."""
        candidates = record.candidates
        if not candidates:
            logger.debug(
                "Skipping directory record without any name",
                extra={"action": "resolve_skip", "target": "-"},
            )
            return None

        chosen_name: Optional[str] = None
        address: Optional[str] = None
        for name in candidates:
            address = await self._names.resolve(name)
            if address:
                chosen_name = name
                break

        if chosen_name is None or address is None:
            logger.debug(
                "No candidate name resolved",
                extra={"action": "resolve_failed", "target": record.label},
            )
            return None

        if not await self._reachability.is_reachable(chosen_name):
            logger.debug(
                "Resolved to %s but did not respond",
                address,
                extra={"action": "unreachable", "target": chosen_name},
            )
            return None

        logger.debug(
            "Reachable at %s",
            address,
            extra={"action": "reachable", "target": chosen_name},
        )
        return ReachableHost.from_record(record, chosen_name=chosen_name, ip_address=address)
