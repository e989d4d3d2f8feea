"""
Per-host report records produced by phase 2.

A :class:`ReportRecord` has a fixed shape: its port map is initialised from
the configured port labels, so every label is present exactly once no
matter which probes succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from hostsweep.models.host import ReachableHost

RETRIEVAL_FAILED: str = "retrieval-failed"
"""Sentinel for "attempted and failed"; ``None`` means "never attempted"."""


class ManagementStatus(Enum):
    """Availability of the remote-management protocol on a host.

    Attributes:
        UNAVAILABLE: Neither the handshake nor the management port answered.
        PORT_ONLY:   The management port accepted a TCP connection but the
                     protocol handshake failed.
        AVAILABLE:   The handshake succeeded.
    """

    UNAVAILABLE = "Unavailable"
    PORT_ONLY = "PortOnly"
    AVAILABLE = "Available"

    @property
    def export_value(self) -> Union[bool, str]:
        """Value written to the ``WinRM`` export column."""
        if self is ManagementStatus.AVAILABLE:
            return True
        if self is ManagementStatus.PORT_ONLY:
            return self.value
        return False


@dataclass(frozen=True)
class PortProbeResult:
    """Outcome of one TCP port probe."""

    label: str
    is_open: bool


@dataclass(frozen=True)
class ReportRecord:
    """Consolidated facts about one reachable host.

    Attributes:
        scan_timestamp:            When the sweep started.
        server:                    Host identifier (the phase-1 chosen name).
        ip_address:                Address the name resolved to.
        os_name:                   Directory OS string.
        os_version:                Directory OS version string.
        online:                    Always ``True``; only reachable hosts get here.
        disk_management_available: The structured inventory query succeeded.
        management_status:         Tri-state management availability.
        admin_share_available:     The administrative share path exists.
        port_open:                 Read-only ``label -> open`` mapping.
        install_date:              ISO date, :data:`RETRIEVAL_FAILED`, or ``None``.
        uptime_days:               Days since last boot, :data:`RETRIEVAL_FAILED`, or ``None``.
    """

    scan_timestamp: datetime
    server: str
    ip_address: str
    os_name: str = ""
    os_version: str = ""
    online: bool = True
    disk_management_available: bool = False
    management_status: ManagementStatus = ManagementStatus.UNAVAILABLE
    admin_share_available: bool = False
    port_open: Mapping[str, bool] = field(default_factory=dict)
    install_date: Optional[str] = None
    uptime_days: Union[float, str, None] = None

    def __post_init__(self) -> None:
        # Freeze the port map so the record cannot be mutated after hand-off.
        object.__setattr__(self, "port_open", MappingProxyType(dict(self.port_open)))

    @classmethod
    def for_host(
        cls,
        host: ReachableHost,
        scan_timestamp: datetime,
        port_labels: Iterable[str],
        port_results: Iterable[PortProbeResult] = (),
        **facts: object,
    ) -> ReportRecord:
        """Build a record whose port map covers exactly *port_labels*.

        Labels without a result default to ``False``; results for labels that
        are not configured (such as the internal management probe) are
        ignored.
        """
        observed: dict[str, bool] = {result.label: result.is_open for result in port_results}
        port_open: dict[str, bool] = {
            label: observed.get(label, False) for label in port_labels
        }
        return cls(
            scan_timestamp=scan_timestamp,
            server=host.chosen_name,
            ip_address=host.ip_address,
            os_name=host.os_name,
            os_version=host.os_version,
            port_open=port_open,
            **facts,  # type: ignore[arg-type]
        )
