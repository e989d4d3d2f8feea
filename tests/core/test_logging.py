"""
Tests for the structured logging helpers.
"""

from __future__ import annotations

import logging

from hostsweep.core.logging import StructuredFormatter, get_logger


def _record(**extra: str) -> logging.LogRecord:
    record = logging.LogRecord(
        name="hostsweep.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_supplies_defaults() -> None:
    """Records without action/target still format, with dashes in their place."""
    formatter = StructuredFormatter("action=%(action)s | target=%(target)s | %(message)s")
    assert formatter.format(_record()) == "action=- | target=- | hello world"


def test_formatter_keeps_structured_fields() -> None:
    formatter = StructuredFormatter("action=%(action)s | target=%(target)s | %(message)s")
    line = formatter.format(_record(action="reachable", target="db1.corp.local"))
    assert line == "action=reachable | target=db1.corp.local | hello world"


def test_get_logger_namespacing() -> None:
    """Foreign names are nested under ``hostsweep``; package names are not doubled."""
    assert get_logger("tools").name == "hostsweep.tools"
    assert get_logger("hostsweep.engine.resolver").name == "hostsweep.engine.resolver"
