"""
Tests for the reachability tester.

Covers the TCP fallback (any open port counts), the ICMP path through a
mocked subprocess, and configuration errors raised at construction time.
"""

from __future__ import annotations

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hostsweep.core.errors import ConfigurationError
from hostsweep.probes.reachability import ReachabilityProbe


def _fake_process(returncode: int, stdout: Optional[bytes] = None) -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, None))
    proc.wait = AsyncMock(return_value=returncode)
    return proc


# ── TCP method ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_tcp_reachable_when_any_port_open() -> None:
    tester = ReachabilityProbe(method="tcp", timeout=0.2, tcp_ports=(445, 3389))

    async def _fake_connect(host: str, port: int, timeout: float = 2.0) -> bool:
        return port == 3389

    with patch("hostsweep.probes.reachability.probe_port", side_effect=_fake_connect) as mock_connect:
        assert await tester.is_reachable("db1.corp.local") is True

    contacted = sorted(call.args[1] for call in mock_connect.call_args_list)
    assert contacted == [445, 3389]


@pytest.mark.asyncio
async def test_tcp_unreachable_when_every_port_closed() -> None:
    tester = ReachabilityProbe(method="tcp", timeout=0.2, tcp_ports=(445, 135))

    with patch(
        "hostsweep.probes.reachability.probe_port", new=AsyncMock(return_value=False)
    ):
        assert await tester.is_reachable("dark.corp.local") is False


def test_tcp_without_ports_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        ReachabilityProbe(method="tcp", tcp_ports=())


def test_unknown_method_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        ReachabilityProbe(method="arp")  # type: ignore[arg-type]


# ── ICMP method ───────────────────────────────────────────────────────────


def test_icmp_without_ping_binary_is_a_configuration_error() -> None:
    """A missing ping binary fails fast instead of marking every host offline."""
    with patch("hostsweep.probes.reachability.shutil.which", return_value=None):
        with pytest.raises(ConfigurationError):
            ReachabilityProbe(method="icmp")


@pytest.mark.asyncio
async def test_icmp_zero_exit_is_reachable() -> None:
    tester = ReachabilityProbe(method="icmp", timeout=1.0, ping_path="/bin/ping")

    with patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=_fake_process(0)),
    ) as mock_exec:
        assert await tester.is_reachable("db1.corp.local") is True

    argv = mock_exec.call_args.args
    assert argv[0] == "/bin/ping"
    assert argv[-1] == "db1.corp.local"
    assert "1" in argv


@pytest.mark.asyncio
async def test_icmp_non_zero_exit_is_unreachable() -> None:
    tester = ReachabilityProbe(method="icmp", timeout=1.0, ping_path="/bin/ping")

    with patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=_fake_process(1)),
    ):
        assert await tester.is_reachable("dark.corp.local") is False


@pytest.mark.asyncio
async def test_icmp_spawn_failure_is_unreachable() -> None:
    tester = ReachabilityProbe(method="icmp", timeout=1.0, ping_path="/bin/ping")

    with patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(side_effect=OSError("exec format error")),
    ):
        assert await tester.is_reachable("db1.corp.local") is False


@pytest.mark.asyncio
async def test_icmp_hung_ping_is_killed_and_unreachable() -> None:
    """A ping that never exits is killed after the grace period."""
    tester = ReachabilityProbe(method="icmp", timeout=0.05, ping_path="/bin/ping")

    proc = MagicMock()
    proc.returncode = None

    async def _hang():
        await asyncio.sleep(10)

    proc.communicate = _hang
    proc.wait = AsyncMock(return_value=-9)

    with patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=proc),
    ):
        assert await tester.is_reachable("slow.corp.local") is False

    proc.kill.assert_called_once()


# ── Platform specifics ────────────────────────────────────────────────────

_WINDOWS_REPLY = (
    b"Pinging db1.corp.local [10.0.0.5] with 32 bytes of data:\r\n"
    b"Reply from 10.0.0.5: bytes=32 time<1ms TTL=128\r\n"
)
_WINDOWS_UNREACHABLE = (
    b"Pinging dark.corp.local [10.0.0.9] with 32 bytes of data:\r\n"
    b"Reply from 10.0.0.1: Destination host unreachable.\r\n"
)


@pytest.mark.asyncio
async def test_windows_reply_with_ttl_is_reachable() -> None:
    tester = ReachabilityProbe(method="icmp", timeout=0.5, ping_path="C:\\Windows\\ping.exe")

    with patch("hostsweep.probes.reachability.sys") as mock_sys, patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=_fake_process(0, _WINDOWS_REPLY)),
    ) as mock_exec:
        mock_sys.platform = "win32"
        assert await tester.is_reachable("db1.corp.local") is True

    argv = mock_exec.call_args.args
    assert argv[1:] == ("-n", "1", "-w", "500", "db1.corp.local")
    assert mock_exec.call_args.kwargs["stdout"] == asyncio.subprocess.PIPE


@pytest.mark.asyncio
async def test_windows_destination_unreachable_with_zero_exit_is_unreachable() -> None:
    """Windows ping exits 0 when a router answers "Destination host unreachable"."""
    tester = ReachabilityProbe(method="icmp", timeout=0.5, ping_path="C:\\Windows\\ping.exe")

    with patch("hostsweep.probes.reachability.sys") as mock_sys, patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=_fake_process(0, _WINDOWS_UNREACHABLE)),
    ):
        mock_sys.platform = "win32"
        assert await tester.is_reachable("dark.corp.local") is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("platform", "wait_arg"),
    [("darwin", "1500"), ("linux", "2")],
)
async def test_ping_wait_flag_units_follow_platform(platform: str, wait_arg: str) -> None:
    """macOS takes -W in milliseconds, Linux in whole seconds."""
    tester = ReachabilityProbe(method="icmp", timeout=1.5, ping_path="/sbin/ping")

    with patch("hostsweep.probes.reachability.sys") as mock_sys, patch(
        "hostsweep.probes.reachability.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=_fake_process(0)),
    ) as mock_exec:
        mock_sys.platform = platform
        assert await tester.is_reachable("db1.corp.local") is True

    assert mock_exec.call_args.args[1:] == ("-c", "1", "-W", wait_arg, "db1.corp.local")
