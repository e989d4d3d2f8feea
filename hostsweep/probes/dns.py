"""
Name resolution probe.

Resolves a directory name (FQDN or short NetBIOS-style alias) to a single
address using ``dnspython`` with tight timeouts.  Negative answers
(NXDOMAIN, NoAnswer, timeouts, unreachable nameservers) collapse to
``None`` so that one unresolvable host never aborts the sweep.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import dns.exception
import dns.resolver

from hostsweep.core.errors import ConfigurationError, ResolutionFailure

logger = logging.getLogger(__name__)


class NameResolver:
    """Resolve names to addresses of one record type.

    Blocking ``dnspython`` queries run in a dedicated thread pool sized to
    the caller's concurrency bound, so the event loop never blocks on DNS.

    Attributes:
        record_type: DNS record type to ask for (``"A"`` by default).
    """

    def __init__(
        self,
        timeout: float = 2.0,
        record_type: str = "A",
        max_workers: int = 32,
        resolver: Optional[dns.resolver.Resolver] = None,
    ) -> None:
        self.record_type = record_type
        if resolver is None:
            try:
                resolver = dns.resolver.Resolver()
            except dns.resolver.NoResolverConfiguration as exc:
                raise ConfigurationError(f"No usable DNS resolver configuration: {exc}") from exc
        self._resolver = resolver
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hostsweep-dns"
        )

    async def resolve(self, name: str) -> Optional[str]:
        """Return the first address for *name*, or ``None`` when it does not resolve."""
        if not name:
            return None
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, self._first_address, self._resolver, name, self.record_type
            )
        except ResolutionFailure as exc:
            logger.debug("%s", exc)
            return None

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _first_address(
        resolver: dns.resolver.Resolver,
        name: str,
        record_type: str,
    ) -> str:
        """Resolve *name* and return the first answer as text.

        ``search=True`` lets short aliases pick up the host's DNS search
        suffixes, the same way the operating system resolver would.

        Raises:
            ResolutionFailure: On any negative response or resolver error.
        """
        try:
            answers = resolver.resolve(name, record_type, search=True)
        except (
            dns.resolver.NXDOMAIN,
            dns.resolver.NoAnswer,
            dns.resolver.NoNameservers,
            dns.resolver.YXDOMAIN,
            dns.exception.Timeout,
        ) as exc:
            raise ResolutionFailure(name, type(exc).__name__) from exc
        except (dns.exception.DNSException, OSError, ValueError) as exc:
            raise ResolutionFailure(name, str(exc)) from exc

        for rdata in answers:
            return str(rdata)
        raise ResolutionFailure(name, f"no {record_type} record in answer")


async def resolve_name(name: str, record_type: str = "A", timeout: float = 2.0) -> Optional[str]:
    """One-off lookup through a short-lived :class:`NameResolver`."""
    names = NameResolver(timeout=timeout, record_type=record_type, max_workers=1)
    try:
        return await names.resolve(name)
    finally:
        names.close()
