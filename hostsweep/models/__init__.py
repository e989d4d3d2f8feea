"""
hostsweep data models.

Re-exports every record type so that consumers can import directly from
``hostsweep.models`` instead of reaching into individual submodules::

    from hostsweep.models import HostRecord, ReportRecord, ManagementStatus
"""

from hostsweep.models.host import HostRecord, ReachableHost
from hostsweep.models.report import (
    RETRIEVAL_FAILED,
    ManagementStatus,
    PortProbeResult,
    ReportRecord,
)

__all__: list[str] = [
    "HostRecord",
    "ReachableHost",
    "ManagementStatus",
    "PortProbeResult",
    "ReportRecord",
    "RETRIEVAL_FAILED",
]
