"""Report rendering and export."""

from hostsweep.export.report import (
    export_csv,
    export_json,
    record_to_row,
    render_table,
    report_columns,
    report_filename,
)

__all__ = [
    "export_csv",
    "export_json",
    "record_to_row",
    "render_table",
    "report_columns",
    "report_filename",
]
