"""hostsweep engine: phase-1 resolver, phase-2 enrichment, aggregation and orchestration."""

from hostsweep.engine.aggregator import Aggregator
from hostsweep.engine.enrichment import EnrichmentWorker
from hostsweep.engine.orchestrator import SweepOrchestrator, SweepResult
from hostsweep.engine.resolver import ReachabilityResolver

__all__ = [
    "Aggregator",
    "EnrichmentWorker",
    "ReachabilityResolver",
    "SweepOrchestrator",
    "SweepResult",
]
