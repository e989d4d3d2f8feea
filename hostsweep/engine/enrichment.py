"""
Phase 2: per-host service probing and metadata enrichment.

For one reachable host the worker runs:

1. a port sweep over the configured services plus the management port,
   bounded by a per-host :class:`~hostsweep.core.limiter.ConcurrencyLimiter`;
2. the structured inventory query (``disk_management_available``);
3. the management handshake, falling back to the sweep's management-port
   result for the ``PORT_ONLY`` status;
4. the install-date / last-boot query, only after a successful handshake;
5. the administrative share check.

Steps 1, 2, 5 and the chain 3 → 4 run concurrently.  Every failure is
recovered inside its own step, so the worker always returns exactly one
:class:`~hostsweep.models.report.ReportRecord`.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from hostsweep.config import MANAGEMENT_LABEL
from hostsweep.core.errors import ProbeFailure
from hostsweep.core.limiter import ConcurrencyLimiter
from hostsweep.core.logging import get_logger
from hostsweep.models.host import ReachableHost
from hostsweep.models.report import (
    RETRIEVAL_FAILED,
    ManagementStatus,
    PortProbeResult,
    ReportRecord,
)
from hostsweep.probes.management import ManagementClient
from hostsweep.probes.port import sweep_ports
from hostsweep.probes.share import AdminShareProbe

logger = get_logger(__name__)

_ExtendedFacts = tuple[ManagementStatus, Optional[str], Union[float, str, None]]


class EnrichmentWorker:
    """Build the :class:`ReportRecord` for one reachable host.

    Args:
        management:       Remote-management transport.
        share_probe:      Administrative share check.
        port_set:         Ordered ``(label, port)`` pairs exported as columns.
        scan_timestamp:   Timestamp stamped on every record of the run.
        port_concurrency: Bound of the per-host port limiter.
        port_timeout:     Connect timeout of each port probe, in seconds.
        management_port:  Port probed internally for the ``PORT_ONLY`` status.
    """

    def __init__(
        self,
        management: ManagementClient,
        share_probe: AdminShareProbe,
        port_set: Sequence[tuple[str, int]],
        scan_timestamp: datetime,
        port_concurrency: int = 8,
        port_timeout: float = 2.0,
        management_port: int = 5985,
    ) -> None:
        self._management = management
        self._share_probe = share_probe
        self._port_set: list[tuple[str, int]] = list(port_set)
        self._scan_timestamp = scan_timestamp
        self._port_concurrency = port_concurrency
        self._port_timeout = port_timeout
        self._management_port = management_port

    @property
    def port_labels(self) -> list[str]:
        return [label for label, _port in self._port_set]

    async def enrich(self, host: ReachableHost) -> ReportRecord:
        """Probe *host* and return its finished, immutable report record."""
        name = host.chosen_name
        port_limiter = ConcurrencyLimiter(self._port_concurrency, name=f"ports:{name}")

        sweep = asyncio.ensure_future(
            sweep_ports(
                host.ip_address,
                [*self._port_set, (MANAGEMENT_LABEL, self._management_port)],
                port_limiter,
                self._port_timeout,
            )
        )
        port_results, disk_ok, share_ok, (status, install_date, uptime_days) = (
            await asyncio.gather(
                sweep,
                self._deep_inventory(name),
                self._admin_share(name),
                self._management_chain(name, sweep),
            )
        )

        record = ReportRecord.for_host(
            host,
            scan_timestamp=self._scan_timestamp,
            port_labels=self.port_labels,
            port_results=port_results,
            disk_management_available=disk_ok,
            management_status=status,
            admin_share_available=share_ok,
            install_date=install_date,
            uptime_days=uptime_days,
        )
        logger.debug(
            "Enriched: %d/%d ports open, management=%s",
            sum(1 for is_open in record.port_open.values() if is_open),
            len(record.port_open),
            status.value,
            extra={"action": "host_enriched", "target": name},
        )
        return record

    # -- Steps ----------------------------------------------------------------

    async def _deep_inventory(self, name: str) -> bool:
        try:
            await self._management.query_inventory(name)
        except ProbeFailure as exc:
            logger.debug("%s", exc, extra={"action": "deep_query_failed", "target": name})
            return False
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Unexpected inventory query error: %s",
                exc,
                extra={"action": "deep_query_error", "target": name},
            )
            return False
        return True

    async def _admin_share(self, name: str) -> bool:
        try:
            await self._share_probe.check(name)
        except ProbeFailure as exc:
            logger.debug("%s", exc, extra={"action": "share_unavailable", "target": name})
            return False
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Unexpected share probe error: %s",
                exc,
                extra={"action": "share_error", "target": name},
            )
            return False
        return True

    async def _management_chain(
        self, name: str, sweep: asyncio.Future[list[PortProbeResult]]
    ) -> _ExtendedFacts:
        """Handshake, then boot facts when the handshake succeeded."""
        try:
            await self._management.identify(name)
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, ProbeFailure):
                logger.warning(
                    "Unexpected management handshake error: %s",
                    exc,
                    extra={"action": "management_error", "target": name},
                )
            else:
                logger.debug("%s", exc, extra={"action": "management_unavailable", "target": name})

            port_results = await sweep
            port_open = any(
                result.is_open for result in port_results if result.label == MANAGEMENT_LABEL
            )
            status = ManagementStatus.PORT_ONLY if port_open else ManagementStatus.UNAVAILABLE
            return status, None, None

        try:
            facts = await self._management.query_boot_facts(name)
            install_date = facts.install_date.date().isoformat()
            uptime_days = facts.uptime_days(datetime.now(timezone.utc))
        except Exception as exc:  # noqa: BLE001
            logger.debug(
                "Extended facts unavailable: %s",
                exc,
                extra={"action": "extended_facts_failed", "target": name},
            )
            return ManagementStatus.AVAILABLE, RETRIEVAL_FAILED, RETRIEVAL_FAILED

        return ManagementStatus.AVAILABLE, install_date, uptime_days
