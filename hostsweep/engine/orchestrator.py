"""
Sweep Orchestrator for hostsweep.

Coordinates one complete sweep of a directory inventory:

1. Phase 1: fan the :class:`~hostsweep.engine.resolver.ReachabilityResolver`
   out over every directory record under the phase-1 limiter.
2. Drain the phase-1 aggregator into a sorted list of reachable hosts.
3. Phase 2: once phase 1 has fully completed, fan the
   :class:`~hostsweep.engine.enrichment.EnrichmentWorker` out over the
   reachable hosts under the phase-2 limiter.  Each worker fans out its own
   port probes under a per-host limiter.
4. Drain the phase-2 aggregator into the final sorted report.

Zero reachable hosts is a normal, empty result.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from hostsweep.config import Settings, get_settings
from hostsweep.core.limiter import ConcurrencyLimiter
from hostsweep.core.logging import get_logger
from hostsweep.engine.aggregator import Aggregator
from hostsweep.engine.enrichment import EnrichmentWorker
from hostsweep.engine.resolver import ReachabilityResolver
from hostsweep.models.host import HostRecord, ReachableHost
from hostsweep.models.report import ReportRecord
from hostsweep.probes.dns import NameResolver
from hostsweep.probes.management import ManagementClient, WSManClient
from hostsweep.probes.reachability import ReachabilityProbe
from hostsweep.probes.share import AdminShareProbe

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of a full sweep.

    Attributes:
        scan_timestamp:   When the sweep started (UTC).
        inventory_count:  Number of directory records fed into phase 1.
        reachable:        Phase-1 output, sorted by chosen name.
        records:          Phase-2 output, sorted by server name.
        duration_seconds: Wall-clock time of both phases.
    """

    scan_timestamp: datetime
    inventory_count: int = 0
    reachable: list[ReachableHost] = field(default_factory=list)
    records: list[ReportRecord] = field(default_factory=list)
    duration_seconds: float = 0.0


class SweepOrchestrator:
    """Run the two-phase sweep.

    Collaborators default to the production adapters built from
    :class:`~hostsweep.config.Settings`; tests inject fakes.

    Usage::

        orchestrator = SweepOrchestrator()
        result = await orchestrator.run(records)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        names: Optional[NameResolver] = None,
        reachability: Optional[ReachabilityProbe] = None,
        management: Optional[ManagementClient] = None,
        share_probe: Optional[AdminShareProbe] = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings

        self._owns_names = names is None
        self._names = names or NameResolver(
            timeout=s.dns_timeout, max_workers=s.phase1_concurrency
        )
        self._reachability = reachability or ReachabilityProbe(
            method=s.reachability_method,
            timeout=s.ping_timeout,
            tcp_ports=s.reachability_tcp_ports,
        )
        self._owns_management = management is None
        self._management = management or WSManClient(
            port=s.management_port,
            timeout=s.management_timeout,
            auth=s.management_auth,
            username=s.management_username,
            password=(
                s.management_password.get_secret_value()
                if s.management_password is not None
                else None
            ),
            max_workers=2 * s.phase2_concurrency,
        )
        self._owns_share_probe = share_probe is None
        self._share_probe = share_probe or AdminShareProbe(
            share=s.admin_share,
            timeout=s.share_timeout,
            max_workers=s.phase2_concurrency,
        )

    # -- Public entry point ---------------------------------------------------

    async def run(self, records: Iterable[HostRecord]) -> SweepResult:
        """Execute both phases over *records* and return the sorted results."""
        inventory: list[HostRecord] = list(records)
        scan_timestamp = datetime.now(timezone.utc)
        start: float = time.monotonic()

        logger.info(
            "Starting sweep of %d directory record(s)",
            len(inventory),
            extra={"action": "sweep_start", "target": "inventory"},
        )

        reachable = await self.run_phase1(inventory)
        result = SweepResult(
            scan_timestamp=scan_timestamp,
            inventory_count=len(inventory),
            reachable=reachable,
        )

        if not reachable:
            logger.info(
                "No reachable hosts; nothing to enrich",
                extra={"action": "sweep_empty", "target": "inventory"},
            )
        else:
            result.records = await self.run_phase2(reachable, scan_timestamp)

        result.duration_seconds = round(time.monotonic() - start, 3)
        logger.info(
            "Sweep completed in %.1fs: %d/%d reachable, %d record(s)",
            result.duration_seconds,
            len(result.reachable),
            result.inventory_count,
            len(result.records),
            extra={"action": "sweep_completed", "target": "inventory"},
        )
        return result

    def close(self) -> None:
        """Release the thread pools of the adapters this orchestrator created."""
        if self._owns_names:
            self._names.close()
        if self._owns_share_probe:
            self._share_probe.close()
        if self._owns_management:
            self._management.close()

    # -- Phases ---------------------------------------------------------------

    async def run_phase1(self, inventory: list[HostRecord]) -> list[ReachableHost]:
        """Resolve and reachability-test every record; return the survivors sorted."""
        limiter = ConcurrencyLimiter(self.settings.phase1_concurrency, name="phase1")
        aggregator: Aggregator[ReachableHost] = Aggregator(
            key=lambda host: host.chosen_name, name="phase1"
        )
        resolver = ReachabilityResolver(self._names, self._reachability)
        start: float = time.monotonic()

        async def _resolve(record: HostRecord) -> None:
            async with limiter:
                try:
                    reachable = await resolver.resolve(record)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Unexpected resolution error, host dropped: %s",
                        exc,
                        extra={"action": "resolve_error", "target": record.label},
                    )
                    return
            if reachable is not None:
                aggregator.add(reachable)

        await asyncio.gather(*(_resolve(record) for record in inventory))

        hosts = aggregator.drain()
        logger.info(
            "Phase 1: %d/%d host(s) reachable in %.1fs (peak concurrency %d/%d)",
            len(hosts),
            len(inventory),
            time.monotonic() - start,
            limiter.peak,
            limiter.bound,
            extra={"action": "phase1_completed", "target": "inventory"},
        )
        return hosts

    async def run_phase2(
        self, hosts: list[ReachableHost], scan_timestamp: datetime
    ) -> list[ReportRecord]:
        """Enrich every reachable host; return the report records sorted."""
        limiter = ConcurrencyLimiter(self.settings.phase2_concurrency, name="phase2")
        aggregator: Aggregator[ReportRecord] = Aggregator(
            key=lambda record: record.server, name="phase2"
        )
        worker = EnrichmentWorker(
            management=self._management,
            share_probe=self._share_probe,
            port_set=self.settings.port_set(),
            scan_timestamp=scan_timestamp,
            port_concurrency=self.settings.port_concurrency,
            port_timeout=self.settings.probe_timeout,
            management_port=self.settings.management_port,
        )
        start: float = time.monotonic()

        async def _enrich(host: ReachableHost) -> None:
            async with limiter:
                try:
                    record = await worker.enrich(host)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Unexpected enrichment error, reporting defaults: %s",
                        exc,
                        extra={"action": "enrich_error", "target": host.chosen_name},
                    )
                    record = ReportRecord.for_host(
                        host, scan_timestamp=scan_timestamp, port_labels=worker.port_labels
                    )
            aggregator.add(record)

        await asyncio.gather(*(_enrich(host) for host in hosts))

        records = aggregator.drain()
        logger.info(
            "Phase 2: enriched %d host(s) in %.1fs (peak concurrency %d/%d)",
            len(records),
            time.monotonic() - start,
            limiter.peak,
            limiter.bound,
            extra={"action": "phase2_completed", "target": "inventory"},
        )
        return records
