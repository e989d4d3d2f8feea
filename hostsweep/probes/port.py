"""
TCP port probe.

A port counts as open only when a TCP connection fully establishes within
the timeout.  Uses only ``asyncio`` streams; the connect is wrapped in
:func:`asyncio.wait_for` so the timeout holds even when the peer silently
drops SYN packets.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from hostsweep.core.errors import PortClosed
from hostsweep.core.limiter import ConcurrencyLimiter
from hostsweep.models.report import PortProbeResult

logger = logging.getLogger(__name__)


async def probe_port(host: str, port: int, timeout: float = 2.0) -> bool:
    """Return ``True`` when ``host:port`` accepts a TCP connection within *timeout*."""
    try:
        await _connect(host, port, timeout)
    except PortClosed as exc:
        logger.debug("%s", exc)
        return False
    return True


async def sweep_ports(
    host: str,
    ports: Iterable[tuple[str, int]],
    limiter: ConcurrencyLimiter,
    timeout: float = 2.0,
) -> list[PortProbeResult]:
    """Probe every ``(label, port)`` of *host* concurrently under *limiter*.

    Returns one :class:`PortProbeResult` per input pair, in input order.
    """
    targets: list[tuple[str, int]] = list(ports)

    async def _probe(label: str, port: int) -> PortProbeResult:
        async with limiter:
            is_open = await probe_port(host, port, timeout)
        return PortProbeResult(label=label, is_open=is_open)

    return list(
        await asyncio.gather(*(_probe(label, port) for label, port in targets))
    )


async def _connect(host: str, port: int, timeout: float) -> None:
    """Open and immediately close a connection.

    Raises:
        PortClosed: On refusal, reset, unreachable network or timeout.
    """
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise PortClosed(f"{host}:{port}", f"no answer within {timeout:.1f}s") from exc
    except OSError as exc:
        raise PortClosed(f"{host}:{port}", str(exc) or type(exc).__name__) from exc

    writer.close()
    try:
        await asyncio.wait_for(writer.wait_closed(), timeout=timeout)
    except (asyncio.TimeoutError, OSError) as exc:
        # The connection was established; a noisy close does not change that.
        logger.debug("Closing probe socket to %s:%d failed: %s", host, port, exc)
