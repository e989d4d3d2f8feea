"""
Report export for hostsweep.

Flattens :class:`~hostsweep.models.report.ReportRecord` instances into rows
whose column order is fixed for downstream consumers::

    ScanDate, Server, IPAddress, OperatingSystem, OSVersion, Online,
    WMI, WinRM, RPC_over_SMB, <one column per port label>, InstallDate, UptimeDays

and writes them as CSV or JSON with a timestamped filename, or renders them
as a ``rich`` table for the console.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from rich import box
from rich.table import Table

from hostsweep.core.logging import get_logger
from hostsweep.models.report import ReportRecord

logger = get_logger(__name__)

LEADING_COLUMNS: list[str] = [
    "ScanDate",
    "Server",
    "IPAddress",
    "OperatingSystem",
    "OSVersion",
    "Online",
    "WMI",
    "WinRM",
    "RPC_over_SMB",
]
TRAILING_COLUMNS: list[str] = ["InstallDate", "UptimeDays"]

_SCAN_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
_FILENAME_STAMP_FORMAT: str = "%Y%m%d_%H%M%S"


def report_columns(port_labels: Sequence[str]) -> list[str]:
    """Full, ordered column list for the given port labels."""
    return [*LEADING_COLUMNS, *port_labels, *TRAILING_COLUMNS]


def record_to_row(record: ReportRecord, port_labels: Sequence[str]) -> dict[str, Any]:
    """Flatten *record* into an ordered ``column -> value`` dict."""
    row: dict[str, Any] = {
        "ScanDate": record.scan_timestamp.strftime(_SCAN_DATE_FORMAT),
        "Server": record.server,
        "IPAddress": record.ip_address,
        "OperatingSystem": record.os_name,
        "OSVersion": record.os_version,
        "Online": record.online,
        "WMI": record.disk_management_available,
        "WinRM": record.management_status.export_value,
        "RPC_over_SMB": record.admin_share_available,
    }
    for label in port_labels:
        row[label] = record.port_open.get(label, False)
    row["InstallDate"] = record.install_date
    row["UptimeDays"] = record.uptime_days
    return row


def _port_labels(records: Sequence[ReportRecord], port_labels: Optional[Sequence[str]]) -> list[str]:
    if port_labels is not None:
        return list(port_labels)
    if records:
        return list(records[0].port_open.keys())
    return []


def report_filename(stamp: Optional[datetime] = None, extension: str = "csv") -> str:
    """``ServerReport_<YYYYMMDD_HHMMSS>.<extension>``."""
    stamp = stamp or datetime.now(timezone.utc)
    return f"ServerReport_{stamp.strftime(_FILENAME_STAMP_FORMAT)}.{extension}"


def export_csv(
    records: Sequence[ReportRecord],
    directory: Union[str, Path] = ".",
    port_labels: Optional[Sequence[str]] = None,
    stamp: Optional[datetime] = None,
) -> Path:
    """Write *records* as CSV into *directory* and return the file path.

    ``None`` values are written as empty cells.
    """
    labels = _port_labels(records, port_labels)
    target = Path(directory) / report_filename(stamp, "csv")
    target.parent.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Exporting %d record(s) to CSV",
        len(records),
        extra={"action": "export_csv", "target": str(target)},
    )
    with target.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=report_columns(labels))
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record, labels))
    return target


def export_json(
    records: Sequence[ReportRecord],
    directory: Union[str, Path] = ".",
    port_labels: Optional[Sequence[str]] = None,
    stamp: Optional[datetime] = None,
) -> Path:
    """Write *records* as a JSON array of rows into *directory*."""
    labels = _port_labels(records, port_labels)
    target = Path(directory) / report_filename(stamp, "json")
    target.parent.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Exporting %d record(s) to JSON",
        len(records),
        extra={"action": "export_json", "target": str(target)},
    )
    rows = [record_to_row(record, labels) for record in records]
    with target.open("w", encoding="utf-8") as handle:
        json.dump(rows, handle, indent=2, default=str)
    return target


def render_table(
    records: Sequence[ReportRecord],
    port_labels: Optional[Sequence[str]] = None,
    title: Optional[str] = "Server report",
) -> Table:
    """Build a :class:`rich.table.Table` with one row per record.

    ``None`` cells are left empty, as in the CSV export.
    """
    labels = _port_labels(records, port_labels)
    table = Table(title=title, show_header=True, header_style="bold", box=box.SIMPLE_HEAVY)
    for column in report_columns(labels):
        table.add_column(column, no_wrap=True)
    for record in records:
        table.add_row(
            *("" if value is None else str(value) for value in record_to_row(record, labels).values())
        )
    return table
