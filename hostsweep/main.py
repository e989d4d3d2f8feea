"""
hostsweep entry point.

Runs one sweep end to end:

- configure logging from the settings
- load the directory inventory from ``inventory_path``
- run both phases through the :class:`~hostsweep.engine.orchestrator.SweepOrchestrator`
- print the report table and write the timestamped CSV into ``output_dir``

All options come from :class:`~hostsweep.config.Settings` (environment or
``.env``); there are no command-line flags.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

from pydantic import ValidationError
from rich.console import Console

from hostsweep.config import Settings, get_settings
from hostsweep.core.errors import ConfigurationError
from hostsweep.core.logging import configure_logging, get_logger
from hostsweep.directory.inventory import load_inventory
from hostsweep.engine.orchestrator import SweepOrchestrator, SweepResult
from hostsweep.export.report import export_csv, render_table

logger = get_logger(__name__)
console = Console()

EXIT_OK: int = 0
EXIT_CONFIG_ERROR: int = 2


async def run_sweep(settings: Settings) -> SweepResult:
    """Load the inventory and run both phases with *settings*."""
    records = load_inventory(settings.inventory_path)
    orchestrator = SweepOrchestrator(settings)
    try:
        return await orchestrator.run(records)
    finally:
        orchestrator.close()


def main(settings: Optional[Settings] = None) -> int:
    """Console-script entry point; returns the process exit code."""
    try:
        settings = settings or get_settings()
    except ValidationError as exc:
        sys.stderr.write(f"Invalid configuration: {exc}\n")
        return EXIT_CONFIG_ERROR

    configure_logging(settings=settings)

    try:
        result = asyncio.run(run_sweep(settings))
    except ConfigurationError as exc:
        logger.error(
            "Sweep aborted: %s",
            exc,
            extra={"action": "sweep_aborted", "target": settings.inventory_path},
        )
        return EXIT_CONFIG_ERROR

    port_labels = [label for label, _port in settings.port_set()]
    console.print(render_table(result.records, port_labels))
    path = export_csv(
        result.records,
        settings.output_dir,
        port_labels=port_labels,
        stamp=result.scan_timestamp,
    )
    logger.info(
        "Report written: %d record(s)",
        len(result.records),
        extra={"action": "report_written", "target": str(path)},
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
