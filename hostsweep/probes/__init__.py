"""
Network probes used by the sweep pipeline.

Each probe performs one bounded-timeout check against one endpoint.  Name
resolution, reachability and port probes return plain values and never
raise on network failure; the management and share adapters raise
:class:`~hostsweep.core.errors.ProbeFailure` subclasses that the enrichment
worker encodes into the report.
"""

from hostsweep.probes.dns import NameResolver, resolve_name
from hostsweep.probes.management import BootFacts, ManagementClient, WSManClient
from hostsweep.probes.port import probe_port, sweep_ports
from hostsweep.probes.reachability import ReachabilityProbe
from hostsweep.probes.share import AdminShareProbe

__all__: list[str] = [
    "NameResolver",
    "resolve_name",
    "ReachabilityProbe",
    "probe_port",
    "sweep_ports",
    "ManagementClient",
    "WSManClient",
    "BootFacts",
    "AdminShareProbe",
]
