"""
hostsweep configuration.

Loads settings from environment variables (prefixed ``HOSTSWEEP_``) with
defaults suitable for sweeping a mid-sized Windows estate.  Uses Pydantic
BaseSettings so every value can be overridden via an environment variable or
a ``.env`` file placed next to the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# ── Service catalogue ───────────────────────────────────────────────────────

BASE_PORTS: list[tuple[str, int]] = [
    ("RDP", 3389),
    ("HTTP", 80),
    ("HTTPS", 443),
    ("FTP", 21),
    ("SSH", 22),
    ("LDAP", 389),
    ("LDAPS", 636),
    ("Kerberos", 88),
]
"""Services probed on every reachable host, in export column order."""

EXTENDED_PORTS: list[tuple[str, int]] = [
    ("SMB", 445),
    ("RPC", 135),
    ("MSSQL", 1433),
    ("SMTP", 25),
    ("SMTPS", 465),
]
"""Additional services appended when ``port_profile`` is ``"extended"``."""

MANAGEMENT_LABEL: str = "WinRM"
"""Internal label of the management-port probe; never exported as a column."""


class Settings(BaseSettings):
    """Central configuration for a sweep run.

    All attributes can be overridden through environment variables of the
    same name with a ``HOSTSWEEP_`` prefix (case-insensitive).  For example,
    ``HOSTSWEEP_PHASE1_CONCURRENCY=128`` widens the reachability fan-out.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOSTSWEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────────────────
    APP_NAME: str = "hostsweep"
    debug: bool = False
    log_level: Optional[str] = None

    # ── Concurrency bounds ──────────────────────────────────────────────────
    phase1_concurrency: int = 64
    phase2_concurrency: int = 16
    port_concurrency: int = 8

    # ── Timeouts (milliseconds) ─────────────────────────────────────────────
    probe_timeout_ms: int = 2000
    dns_timeout_ms: int = 2000
    ping_timeout_ms: int = 1000
    management_timeout_ms: int = 5000
    share_timeout_ms: int = 3000

    # ── Reachability ────────────────────────────────────────────────────────
    reachability_method: Literal["icmp", "tcp"] = "icmp"
    reachability_tcp_ports: Annotated[list[int], NoDecode] = [445, 135, 3389, 22, 80]

    # ── Enrichment ──────────────────────────────────────────────────────────
    port_profile: Literal["base", "extended"] = "base"
    management_port: int = 5985
    management_auth: Literal["ntlm", "kerberos", "basic"] = "ntlm"
    management_username: Optional[str] = None
    management_password: Optional[SecretStr] = None
    admin_share: str = "C$"

    # ── Input / output ──────────────────────────────────────────────────────
    inventory_path: str = "inventory.csv"
    output_dir: str = "."

    # ── Validators ──────────────────────────────────────────────────────────

    @field_validator(
        "phase1_concurrency",
        "phase2_concurrency",
        "port_concurrency",
        "probe_timeout_ms",
        "dns_timeout_ms",
        "ping_timeout_ms",
        "management_timeout_ms",
        "share_timeout_ms",
    )
    @classmethod
    def require_positive(cls, value: int) -> int:
        """Concurrency bounds and timeouts must be strictly positive."""
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("reachability_tcp_ports", mode="before")
    @classmethod
    def parse_port_list(cls, value: object) -> list[int]:
        """Accept a comma-separated string *or* an actual list."""
        if isinstance(value, str):
            return [int(port.strip()) for port in value.split(",") if port.strip()]
        return list(value)  # type: ignore[arg-type]

    # ── Derived values ──────────────────────────────────────────────────────

    def port_set(self) -> list[tuple[str, int]]:
        """Return the ordered ``(label, port)`` pairs exported as columns."""
        ports = list(BASE_PORTS)
        if self.port_profile == "extended":
            ports.extend(EXTENDED_PORTS)
        return ports

    @property
    def probe_timeout(self) -> float:
        return self.probe_timeout_ms / 1000.0

    @property
    def dns_timeout(self) -> float:
        return self.dns_timeout_ms / 1000.0

    @property
    def ping_timeout(self) -> float:
        return self.ping_timeout_ms / 1000.0

    @property
    def management_timeout(self) -> float:
        return self.management_timeout_ms / 1000.0

    @property
    def share_timeout(self) -> float:
        return self.share_timeout_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the sweep settings.

    Using ``lru_cache`` ensures the ``.env`` file is read only once and the
    same ``Settings`` instance is reused across the entire process.
    """
    return Settings()
