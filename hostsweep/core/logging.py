"""
Structured logging configuration for hostsweep.

All log records include the fields ``action`` and ``target`` so that every
log line is machine-parseable while remaining human-readable.

Usage::

    from hostsweep.core.logging import configure_logging, get_logger

    configure_logging()                # call once at startup
    logger = get_logger(__name__)
    logger.info("phase started", extra={"action": "phase1_start", "target": "inventory"})
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from hostsweep.config import Settings, get_settings

# ── Constants ────────────────────────────────────────────────────────────────

_LOG_FORMAT: str = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "action=%(action)s | target=%(target)s | %(message)s"
)
_DATE_FORMAT: str = "%Y-%m-%dT%H:%M:%S%z"
_ROOT_LOGGER_NAME: str = "hostsweep"


# ── Custom Formatter ─────────────────────────────────────────────────────────

class StructuredFormatter(logging.Formatter):
    """Formatter that injects default values for structured fields.

    If a log record is missing the ``action`` or ``target`` attribute, this
    formatter supplies a dash (``-``) so that the format string never raises a
    ``KeyError``.
    """

    _DEFAULTS: dict[str, str] = {
        "action": "-",
        "target": "-",
    }

    def format(self, record: logging.LogRecord) -> str:
        for key, default in self._DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, default)
        return super().format(record)


# ── Public API ───────────────────────────────────────────────────────────────

def configure_logging(
    level: Optional[str] = None, settings: Optional[Settings] = None
) -> None:
    """Initialise the application-wide logging configuration.

    This should be called exactly once, by the entry point, before the
    pipeline starts.

    Args:
        level: Override the log level.  When ``None`` the ``log_level``
            setting is used, falling back to ``DEBUG`` if ``settings.debug``
            is truthy and ``INFO`` otherwise.
        settings: Settings to read from; the cached singleton when omitted.
    """
    settings = settings or get_settings()

    if level is None:
        level = settings.log_level or ("DEBUG" if settings.debug else "INFO")
    level = level.upper()

    root_logger: logging.Logger = logging.getLogger(_ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    # Avoid adding duplicate handlers on repeated calls (e.g. in tests).
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(StructuredFormatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(handler)

    # Silence noisy third-party loggers.
    for noisy_logger in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    root_logger.info(
        "Logging configured at %s level",
        level,
        extra={"action": "logging_init", "target": settings.APP_NAME},
    )


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``hostsweep`` namespace.

    Module names that already start with ``hostsweep.`` are used as-is so the
    hierarchy does not nest twice.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance.
    """
    if name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
