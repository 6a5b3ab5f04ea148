"""
Structured logging setup shared by every component.

Events are logged by name (``measurement_added``, ``alert_dispatch_failed``)
with bound context instead of formatted strings, so downstream tooling can
filter on fields.
"""

import logging
import sys
from typing import Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]


def _configure_structlog(log_format: LogFormat) -> None:
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: LogLevel = "INFO", log_format: LogFormat = "json") -> None:
    """Route structlog through stdlib logging at the given level. Call once at startup."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )
    _configure_structlog(log_format)


# Library default: JSON events, stdlib decides the level and destination
_configure_structlog("json")

logger = structlog.get_logger("patient_monitor")
