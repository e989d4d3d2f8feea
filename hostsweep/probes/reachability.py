"""
Reachability probe.

Answers the question "does this host respond at all?" with a single test:
either one ICMP echo through the system ``ping`` binary, or a TCP connect
to any of a short list of commonly open ports for networks that filter
ICMP.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from typing import Literal, Optional, Sequence

from hostsweep.core.errors import ConfigurationError, ReachabilityFailure
from hostsweep.probes.port import probe_port

logger = logging.getLogger(__name__)

ReachabilityMethod = Literal["icmp", "tcp"]


class ReachabilityProbe:
    """One-shot reachability test against a resolved name.

    Args:
        method:    ``"icmp"`` (default) or ``"tcp"``.
        timeout:   Seconds to wait for the echo reply or the connect.
        tcp_ports: Ports tried concurrently by the ``"tcp"`` method.
        ping_path: Explicit path to the ``ping`` binary; looked up on
                   ``PATH`` when omitted.

    Raises:
        ConfigurationError: When ``method`` is ``"icmp"`` and no ``ping``
            binary is available.
    """

    def __init__(
        self,
        method: ReachabilityMethod = "icmp",
        timeout: float = 1.0,
        tcp_ports: Sequence[int] = (445, 135, 3389, 22, 80),
        ping_path: Optional[str] = None,
    ) -> None:
        self.method = method
        self.timeout = timeout
        self.tcp_ports = tuple(tcp_ports)
        self._ping_path: Optional[str] = None

        if method == "icmp":
            self._ping_path = ping_path or shutil.which("ping")
            if not self._ping_path:
                raise ConfigurationError(
                    "'ping' not found on PATH; set reachability_method=tcp instead."
                )
        elif method == "tcp":
            if not self.tcp_ports:
                raise ConfigurationError("reachability_method=tcp needs at least one port.")
        else:
            raise ConfigurationError(f"Unknown reachability method: {method!r}")

    async def is_reachable(self, name: str) -> bool:
        """Return ``True`` when *name* answers the configured test."""
        try:
            if self.method == "icmp":
                await self._ping(name)
            else:
                await self._tcp_any(name)
        except ReachabilityFailure as exc:
            logger.debug("%s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ping_command(self, name: str) -> list[str]:
        if sys.platform.startswith("win"):
            return [self._ping_path, "-n", "1", "-w", str(int(self.timeout * 1000)), name]
        if sys.platform == "darwin":
            # BSD ping takes -W in milliseconds.
            return [self._ping_path, "-c", "1", "-W", str(max(1, int(self.timeout * 1000))), name]
        return [self._ping_path, "-c", "1", "-W", str(max(1, round(self.timeout))), name]

    async def _ping(self, name: str) -> None:
        # Windows ping exits 0 on "Destination host unreachable"; only a
        # reply line carrying a TTL counts there.
        windows = sys.platform.startswith("win")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._ping_command(name),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE if windows else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ReachabilityFailure(name, f"could not start ping: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout + 1.0)
        except asyncio.TimeoutError as exc:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise ReachabilityFailure(name, "ping did not exit in time") from exc

        if proc.returncode != 0:
            raise ReachabilityFailure(name, f"ping exited with {proc.returncode}")
        if windows and b"TTL=" not in (stdout or b"").upper():
            raise ReachabilityFailure(name, "ping got no echo reply")

    async def _tcp_any(self, name: str) -> None:
        results = await asyncio.gather(
            *(probe_port(name, port, self.timeout) for port in self.tcp_ports)
        )
        if not any(results):
            ports = ",".join(str(port) for port in self.tcp_ports)
            raise ReachabilityFailure(name, f"no answer on tcp/{ports}")
