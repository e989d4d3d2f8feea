"""hostsweep: two-phase reachability and service sweep of a directory inventory."""

__version__ = "0.1.0"
