"""
Error taxonomy for hostsweep.

Probe failures are raised by the network adapters and recovered by the
resolver and enrichment worker at the point of occurrence, where they are
encoded as booleans, statuses or sentinel values.  None of them ever
reaches the pipeline caller.

Configuration errors are the only faults allowed to terminate a run.
"""

from __future__ import annotations


class ProbeFailure(Exception):
    """Base class for every per-host, per-probe failure.

    Attributes:
        target: Host name or address the probe was aimed at.
        detail: Human-readable reason, typically the underlying exception text.
    """

    kind: str = "probe_failure"

    def __init__(self, target: str, detail: str = "") -> None:
        self.target = target
        self.detail = detail
        message = f"{self.kind} for {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ResolutionFailure(ProbeFailure):
    """No address of the requested record type could be found."""

    kind = "resolution_failure"


class ReachabilityFailure(ProbeFailure):
    """The host did not answer the reachability test."""

    kind = "reachability_failure"


class PortClosed(ProbeFailure):
    """Connection refused, reset or timed out."""

    kind = "port_closed"


class ManagementUnavailable(ProbeFailure):
    """Handshake, authentication or protocol failure on the management port."""

    kind = "management_unavailable"


class DeepQueryFailure(ProbeFailure):
    """The structured inventory query failed."""

    kind = "deep_query_failure"


class ExtendedFactsFailure(ProbeFailure):
    """Install date / last boot retrieval failed."""

    kind = "extended_facts_failure"


class ShareUnavailable(ProbeFailure):
    """The administrative share path is not accessible."""

    kind = "share_unavailable"


class ConfigurationError(RuntimeError):
    """Invalid settings or unusable external prerequisites."""


class InventoryError(ConfigurationError):
    """The directory inventory could not be loaded."""
