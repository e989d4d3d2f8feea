"""
Host records flowing through phase 1.

A :class:`HostRecord` comes from the directory inventory; a
:class:`ReachableHost` is what survives name resolution and the
reachability test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class HostRecord:
    """One computer object as returned by the directory.

    Attributes:
        primary_name: Fully-qualified DNS host name, when the directory has one.
        alias_name:   Short / NetBIOS name.
        os_name:      Operating system string (e.g. ``"Windows Server 2019 Standard"``).
        os_version:   Operating system version string (e.g. ``"10.0 (17763)"``).
    """

    primary_name: Optional[str] = None
    alias_name: Optional[str] = None
    os_name: str = ""
    os_version: str = ""

    @property
    def candidates(self) -> list[str]:
        """Names to try for resolution, primary first, blanks dropped."""
        return [name for name in (self.primary_name, self.alias_name) if name]

    @property
    def label(self) -> str:
        """Best available identifier for logging."""
        return self.primary_name or self.alias_name or "<unnamed>"


@dataclass(frozen=True)
class ReachableHost:
    """A host that resolved and answered the reachability test.

    Attributes:
        chosen_name: The name that resolved and responded.
        ip_address:  Address obtained from resolving ``chosen_name``.
        os_name:     Carried over from the directory record.
        os_version:  Carried over from the directory record.
    """

    chosen_name: str
    ip_address: str
    os_name: str = ""
    os_version: str = ""

    @classmethod
    def from_record(cls, record: HostRecord, chosen_name: str, ip_address: str) -> ReachableHost:
        return cls(
            chosen_name=chosen_name,
            ip_address=ip_address,
            os_name=record.os_name,
            os_version=record.os_version,
        )
