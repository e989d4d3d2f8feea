"""
Tests for report export (CSV, JSON and console grid).

Validates the fixed column order, the WinRM tri-state encoding, the
timestamped filename, and empty-cell handling of never-attempted facts.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console

from hostsweep.config import BASE_PORTS
from hostsweep.export.report import (
    export_csv,
    export_json,
    record_to_row,
    render_table,
    report_columns,
    report_filename,
)
from hostsweep.models.host import ReachableHost
from hostsweep.models.report import (
    RETRIEVAL_FAILED,
    ManagementStatus,
    PortProbeResult,
    ReportRecord,
)

LABELS = [label for label, _ in BASE_PORTS]
STAMP = datetime(2024, 5, 1, 8, 30, 0, tzinfo=timezone.utc)


def _record(name: str, status: ManagementStatus, **facts) -> ReportRecord:
    host = ReachableHost(name, "10.0.0.5", "Windows Server 2019 Standard", "10.0 (17763)")
    return ReportRecord.for_host(
        host,
        scan_timestamp=STAMP,
        port_labels=LABELS,
        port_results=[PortProbeResult("RDP", True), PortProbeResult("WinRM", True)],
        management_status=status,
        **facts,
    )


def test_columns_fixed_order() -> None:
    assert report_columns(["RDP", "HTTP"]) == [
        "ScanDate", "Server", "IPAddress", "OperatingSystem", "OSVersion",
        "Online", "WMI", "WinRM", "RPC_over_SMB", "RDP", "HTTP",
        "InstallDate", "UptimeDays",
    ]


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (ManagementStatus.AVAILABLE, True),
        (ManagementStatus.PORT_ONLY, "PortOnly"),
        (ManagementStatus.UNAVAILABLE, False),
    ],
)
def test_winrm_column_encoding(status: ManagementStatus, expected) -> None:
    row = record_to_row(_record("db1", status), LABELS)
    assert row["WinRM"] == expected


def test_row_values() -> None:
    row = record_to_row(
        _record(
            "db1.corp.local",
            ManagementStatus.AVAILABLE,
            disk_management_available=True,
            install_date="2021-03-14",
            uptime_days=3.1,
        ),
        LABELS,
    )
    assert row["ScanDate"] == "2024-05-01 08:30:00"
    assert row["Server"] == "db1.corp.local"
    assert row["Online"] is True
    assert row["WMI"] is True
    assert row["RDP"] is True
    assert row["HTTP"] is False
    assert "WinRM" in row and row["WinRM"] is True
    assert row["InstallDate"] == "2021-03-14"
    assert row["UptimeDays"] == 3.1


def test_report_filename() -> None:
    assert report_filename(STAMP) == "ServerReport_20240501_083000.csv"
    assert report_filename(STAMP, "json") == "ServerReport_20240501_083000.json"


def test_export_csv_writes_header_and_rows(tmp_path: Path) -> None:
    records = [
        _record("db1", ManagementStatus.PORT_ONLY),
        _record(
            "db2",
            ManagementStatus.AVAILABLE,
            install_date=RETRIEVAL_FAILED,
            uptime_days=RETRIEVAL_FAILED,
        ),
    ]

    path = export_csv(records, tmp_path / "out", port_labels=LABELS, stamp=STAMP)

    assert path.name == "ServerReport_20240501_083000.csv"
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        assert reader.fieldnames == report_columns(LABELS)
        rows = list(reader)

    assert [row["Server"] for row in rows] == ["db1", "db2"]
    assert rows[0]["WinRM"] == "PortOnly"
    assert rows[0]["InstallDate"] == ""
    assert rows[1]["WinRM"] == "True"
    assert rows[1]["UptimeDays"] == RETRIEVAL_FAILED


def test_export_csv_empty_still_has_header(tmp_path: Path) -> None:
    path = export_csv([], tmp_path, port_labels=LABELS, stamp=STAMP)
    header = path.read_text(encoding="utf-8").splitlines()[0]
    assert header.split(",") == report_columns(LABELS)


def test_export_json(tmp_path: Path) -> None:
    path = export_json([_record("db1", ManagementStatus.UNAVAILABLE)], tmp_path, stamp=STAMP)

    rows = json.loads(path.read_text(encoding="utf-8"))
    assert rows[0]["Server"] == "db1"
    assert rows[0]["WinRM"] is False
    assert rows[0]["InstallDate"] is None
    assert list(rows[0]) == report_columns(LABELS)


def test_render_table_lists_every_record() -> None:
    table = render_table(
        [_record("db1", ManagementStatus.AVAILABLE), _record("web1", ManagementStatus.PORT_ONLY)],
        LABELS,
    )

    assert [column.header for column in table.columns] == report_columns(LABELS)
    assert table.row_count == 2

    console = Console(file=io.StringIO(), width=400, color_system=None)
    console.print(table)
    text = console.file.getvalue()
    assert "Server report" in text
    assert "db1" in text
    assert "PortOnly" in text


def test_render_table_leaves_missing_facts_blank() -> None:
    table = render_table([_record("db1", ManagementStatus.UNAVAILABLE)], LABELS, title=None)

    install_column = table.columns[report_columns(LABELS).index("InstallDate")]
    assert list(install_column.cells) == [""]
