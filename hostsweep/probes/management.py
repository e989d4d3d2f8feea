"""
Remote-management probes over WS-Management (WinRM).

Three operations are exposed through the :class:`ManagementClient`
protocol:

* ``identify``         -- unauthenticated WS-Man ``Identify`` handshake;
* ``query_inventory``  -- structured query of the host's logical disks;
* ``query_boot_facts`` -- install date and last boot time of the OS.

The default :class:`WSManClient` sends the handshake with ``httpx`` and the
authenticated queries with ``pywinrm`` (NTLM or Kerberos, message-encrypted)
or ``httpx`` basic auth.  Every failure (timeout, refused connection, HTTP
error, rejected credentials, SOAP fault, unparseable body, missing
credentials) is raised as the matching :mod:`hostsweep.core.errors` failure
so the enrichment worker can encode it.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Protocol, Type, Union

import httpx
import requests
from winrm.exceptions import WinRMError, WinRMOperationTimeoutError, WinRMTransportError
from winrm.protocol import Protocol as WinRMProtocol

from hostsweep.core.errors import (
    ConfigurationError,
    DeepQueryFailure,
    ExtendedFactsFailure,
    ManagementUnavailable,
    ProbeFailure,
)

logger = logging.getLogger(__name__)

ManagementAuth = Literal["ntlm", "kerberos", "basic"]
_AUTH_METHODS: tuple[str, ...] = ("ntlm", "kerberos", "basic")

_CIMV2_URI: str = "http://schemas.microsoft.com/wbem/wsman/1/wmi/root/cimv2"
_ENUMERATE_ACTION: str = "http://schemas.xmlsoap.org/ws/2004/09/enumeration/Enumerate"
_SOAP_CONTENT_TYPE: str = "application/soap+xml;charset=UTF-8"

_IDENTIFY_ENVELOPE: str = (
    '<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" '
    'xmlns:wsmid="http://schemas.dmtf.org/wbem/wsman/identity/1/wsmanidentity.xsd">'
    "<s:Header/><s:Body><wsmid:Identify/></s:Body></s:Envelope>"
)

_ENUMERATE_ENVELOPE: str = (
    '<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" '
    'xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing" '
    'xmlns:n="http://schemas.xmlsoap.org/ws/2004/09/enumeration" '
    'xmlns:w="http://schemas.dmtf.org/wbem/wsman/1/wsman.xsd">'
    "<s:Header>"
    "<a:To>{endpoint}</a:To>"
    '<w:ResourceURI s:mustUnderstand="true">{resource_uri}</w:ResourceURI>'
    "<a:ReplyTo><a:Address s:mustUnderstand=\"true\">"
    "http://schemas.xmlsoap.org/ws/2004/08/addressing/role/anonymous"
    "</a:Address></a:ReplyTo>"
    '<a:Action s:mustUnderstand="true">{action}</a:Action>'
    "<w:MaxEnvelopeSize s:mustUnderstand=\"true\">512000</w:MaxEnvelopeSize>"
    "<a:MessageID>uuid:{message_id}</a:MessageID>"
    "<w:OperationTimeout>PT{timeout_seconds}S</w:OperationTimeout>"
    "</s:Header>"
    "<s:Body><n:Enumerate><w:OptimizeEnumeration/><w:MaxElements>32</w:MaxElements>"
    "</n:Enumerate></s:Body></s:Envelope>"
)

# Legacy DMTF CIM_DATETIME: yyyymmddHHMMSS.mmmmmm+UUU (offset in minutes).
_DMTF_DATETIME_RE = re.compile(
    r"^(?P<stamp>\d{14})(?:\.(?P<micro>\d{1,6}))?(?P<sign>[+-])(?P<offset>\d{3})$"
)


@dataclass(frozen=True)
class BootFacts:
    """Install and last-boot timestamps reported by a host."""

    install_date: datetime
    last_boot: datetime

    def uptime_days(self, now: Optional[datetime] = None) -> float:
        """Days between last boot and *now*, rounded to one decimal."""
        now = now or datetime.now(timezone.utc)
        return round((now - self.last_boot).total_seconds() / 86400.0, 1)


class ManagementClient(Protocol):
    """Interface for interchangeable remote-management transports."""

    async def identify(self, host: str) -> None:
        """Complete a lightweight handshake or raise :class:`ManagementUnavailable`."""

    async def query_inventory(self, host: str) -> None:
        """Run the structured inventory query or raise :class:`DeepQueryFailure`."""

    async def query_boot_facts(self, host: str) -> BootFacts:
        """Return boot facts or raise :class:`ExtendedFactsFailure`."""


class WSManClient:
    """WS-Management client.

    The unauthenticated ``Identify`` handshake always goes over ``httpx``.
    Authenticated queries depend on *auth*:

    * ``"ntlm"`` (default) or ``"kerberos"``: ``pywinrm`` with message-level
      encryption, which default WinRM listeners accept over plain HTTP;
    * ``"basic"``: ``httpx`` with basic auth, for listeners that explicitly
      allow it (normally over HTTPS).

    Args:
        port:        Management HTTP port (5985 by default).
        timeout:     Deadline in seconds for each whole request.
        username:    Account used for the authenticated queries.
        password:    Password for *username*.
        scheme:      ``"http"`` or ``"https"``.
        auth:        ``"ntlm"``, ``"kerberos"`` or ``"basic"``.
        max_workers: Thread pool size for the blocking ``pywinrm`` calls.
    """

    def __init__(
        self,
        port: int = 5985,
        timeout: float = 5.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        scheme: str = "http",
        auth: ManagementAuth = "ntlm",
        max_workers: int = 16,
    ) -> None:
        if auth not in _AUTH_METHODS:
            raise ConfigurationError(f"Unknown management auth method: {auth!r}")
        self.port = port
        self.timeout = timeout
        self.scheme = scheme
        self.auth = auth
        self._username = username
        self._password = password
        self._executor: Optional[ThreadPoolExecutor] = None
        if auth != "basic":
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="hostsweep-wsman"
            )

    @property
    def has_credentials(self) -> bool:
        return bool(self._username and self._password)

    def endpoint(self, host: str) -> str:
        return f"{self.scheme}://{host}:{self.port}/wsman"

    # -- Public API -----------------------------------------------------------

    async def identify(self, host: str) -> None:
        body = await self._post(
            host,
            _IDENTIFY_ENVELOPE,
            ManagementUnavailable,
            headers={"WSMANIDENTIFY": "unauthenticated"},
        )
        root = _parse_response(host, body, ManagementUnavailable)
        if _find_first(root, "IdentifyResponse") is None:
            raise ManagementUnavailable(host, "response is not an IdentifyResponse")

    async def query_inventory(self, host: str) -> None:
        body = await self._enumerate(host, "Win32_LogicalDisk", DeepQueryFailure)
        if _find_first(body, "Win32_LogicalDisk") is None:
            raise DeepQueryFailure(host, "no Win32_LogicalDisk instances returned")

    async def query_boot_facts(self, host: str) -> BootFacts:
        body = await self._enumerate(host, "Win32_OperatingSystem", ExtendedFactsFailure)
        install_raw = _element_text(_find_first(body, "InstallDate"))
        boot_raw = _element_text(_find_first(body, "LastBootUpTime"))
        if not install_raw or not boot_raw:
            raise ExtendedFactsFailure(host, "InstallDate/LastBootUpTime missing from response")
        try:
            return BootFacts(
                install_date=parse_cim_datetime(install_raw),
                last_boot=parse_cim_datetime(boot_raw),
            )
        except ValueError as exc:
            raise ExtendedFactsFailure(host, str(exc)) from exc

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    # -- Transport ------------------------------------------------------------

    async def _enumerate(
        self, host: str, cim_class: str, failure: Type[ProbeFailure]
    ) -> ET.Element:
        if not self.has_credentials:
            raise failure(host, "no management credentials configured")

        envelope = _ENUMERATE_ENVELOPE.format(
            endpoint=self.endpoint(host),
            resource_uri=f"{_CIMV2_URI}/{cim_class}",
            action=_ENUMERATE_ACTION,
            message_id=uuid.uuid4(),
            timeout_seconds=max(1, int(self.timeout)),
        )
        logger.debug(
            "Enumerating %s with %s auth",
            cim_class,
            self.auth,
            extra={"action": "wsman_enumerate", "target": host},
        )
        if self.auth == "basic":
            body = await self._post(
                host,
                envelope,
                failure,
                auth=httpx.BasicAuth(self._username, self._password),
            )
        else:
            body = await self._send_encrypted(host, envelope, failure)
        return _parse_response(host, body, failure)

    async def _post(
        self,
        host: str,
        envelope: str,
        failure: Type[ProbeFailure],
        headers: Optional[dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
    ) -> bytes:
        """POST a SOAP envelope with ``httpx`` and return the raw body.

        Raises:
            failure: For any transport or HTTP error, or when the whole
                request outlives ``timeout``.
        """
        request_headers = {"Content-Type": _SOAP_CONTENT_TYPE}
        request_headers.update(headers or {})

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), auth=auth) as client:
                response = await asyncio.wait_for(
                    client.post(
                        self.endpoint(host),
                        content=envelope.encode("utf-8"),
                        headers=request_headers,
                    ),
                    timeout=self.timeout,
                )
                response.raise_for_status()
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise failure(host, f"timed out after {self.timeout:.1f}s") from exc
        except httpx.HTTPStatusError as exc:
            raise failure(host, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise failure(host, str(exc) or type(exc).__name__) from exc
        return response.content

    async def _send_encrypted(
        self, host: str, envelope: str, failure: Type[ProbeFailure]
    ) -> Union[str, bytes]:
        """Send *envelope* through ``pywinrm`` in the thread pool.

        Raises:
            failure: For authentication, transport or SOAP errors reported by
                ``pywinrm``, or when the call outlives ``timeout``.
        """
        operation_timeout = max(1, int(self.timeout))
        loop = asyncio.get_running_loop()
        try:
            protocol = WinRMProtocol(
                self.endpoint(host),
                transport=self.auth,
                username=self._username,
                password=self._password,
                server_cert_validation="ignore",
                message_encryption="auto",
                operation_timeout_sec=operation_timeout,
                read_timeout_sec=operation_timeout + 1,
            )
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, protocol.send_message, envelope),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, WinRMOperationTimeoutError) as exc:
            raise failure(host, f"timed out after {self.timeout:.1f}s") from exc
        except (WinRMError, WinRMTransportError) as exc:
            raise failure(host, str(exc) or type(exc).__name__) from exc
        except (requests.RequestException, OSError) as exc:
            raise failure(host, str(exc) or type(exc).__name__) from exc


# -- XML / datetime helpers ---------------------------------------------------

def _parse_response(
    host: str, body: Union[str, bytes], failure: Type[ProbeFailure]
) -> ET.Element:
    """Parse a SOAP response, raising *failure* on bad XML or a SOAP Fault."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise failure(host, f"invalid SOAP response: {exc}") from exc

    fault = _find_first(root, "Fault")
    if fault is not None:
        reason = _element_text(_find_first(fault, "Text")) or "SOAP fault"
        raise failure(host, reason)
    return root


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_first(root: Optional[ET.Element], local_name: str) -> Optional[ET.Element]:
    """Depth-first search for the first element with *local_name*, ignoring namespaces."""
    if root is None:
        return None
    for element in root.iter():
        if _local_name(element.tag) == local_name:
            return element
    return None


def _element_text(element: Optional[ET.Element]) -> Optional[str]:
    """Text of *element*, or of its first child for ``<cim:Datetime>`` wrappers."""
    if element is None:
        return None
    if element.text and element.text.strip():
        return element.text.strip()
    for child in element:
        if child.text and child.text.strip():
            return child.text.strip()
    return None


def parse_cim_datetime(value: str) -> datetime:
    """Parse a WS-Man ISO 8601 or legacy DMTF datetime into an aware ``datetime``.

    Naive ISO values are taken as UTC.

    Raises:
        ValueError: If *value* matches neither format.
    """
    value = value.strip()
    match = _DMTF_DATETIME_RE.match(value)
    if match:
        stamp = datetime.strptime(match.group("stamp"), "%Y%m%d%H%M%S")
        micro = int((match.group("micro") or "0").ljust(6, "0"))
        offset = int(match.group("offset"))
        if match.group("sign") == "-":
            offset = -offset
        return stamp.replace(
            microsecond=micro, tzinfo=timezone(timedelta(minutes=offset))
        )

    iso = value[:-1] + "+00:00" if value.endswith("Z") else value
    # datetime.fromisoformat accepts at most six fractional digits.
    iso = re.sub(r"(\.\d{6})\d+", r"\1", iso)
    parsed = datetime.fromisoformat(iso)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
