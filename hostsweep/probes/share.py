"""
Administrative share probe.

Checks whether a well-known administrative share (``\\\\host\\C$`` by
default) exists.  Existence implies a working SMB / RPC transport and
sufficient rights to enumerate the share; read permissions on its contents
are not tested.

The filesystem call runs in a dedicated thread pool.  UNC lookups against
dead hosts can block far longer than the timeout and the thread cannot be
interrupted, so a timed-out lookup keeps its worker busy.  The timeout
therefore starts only once a worker has actually picked the lookup up;
time spent queued behind hung lookups never counts against a live host.
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

from hostsweep.core.errors import ShareUnavailable

logger = logging.getLogger(__name__)


class AdminShareProbe:
    """Existence check for ``\\\\<host>\\<share>``.

    Args:
        share:       Share name, ``"C$"`` by default.
        timeout:     Seconds to wait for the filesystem call once it runs.
        max_workers: Size of the probe's own thread pool.
        exists:      Override for the existence check (takes the UNC path);
                     the default uses :meth:`pathlib.Path.exists`.
    """

    def __init__(
        self,
        share: str = "C$",
        timeout: float = 3.0,
        max_workers: int = 16,
        exists: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.share = share
        self.timeout = timeout
        self._exists = exists or _path_exists
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hostsweep-share"
        )

    def unc_path(self, host: str) -> str:
        return f"\\\\{host}\\{self.share}"

    async def check(self, host: str) -> None:
        """Raise :class:`ShareUnavailable` unless the share path exists."""
        path = self.unc_path(host)
        loop = asyncio.get_running_loop()
        started = asyncio.Event()

        def _lookup() -> bool:
            loop.call_soon_threadsafe(started.set)
            return self._exists(path)

        lookup = loop.run_in_executor(self._executor, _lookup)
        try:
            await started.wait()
        except asyncio.CancelledError:
            lookup.cancel()
            raise

        try:
            found = await asyncio.wait_for(lookup, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ShareUnavailable(host, f"{path} did not answer within {self.timeout:.1f}s") from exc
        except OSError as exc:
            raise ShareUnavailable(host, f"{path}: {exc}") from exc

        if not found:
            raise ShareUnavailable(host, f"{path} does not exist or is not accessible")

    def close(self) -> None:
        self._executor.shutdown(wait=False)


def _path_exists(path: str) -> bool:
    # UNC paths are only meaningful on Windows; elsewhere nothing is mounted there.
    if os.name != "nt":
        return False
    return Path(path).exists()
