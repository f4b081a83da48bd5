"""Structured logging for the booking service and scripts.

JSON output for production, console output for development. All modules log
through get_logger() with snake_case event names and keyword context. Calendar
days in event context are rendered as YYYY-MM-DD, the form used in the store.
"""

import logging
import sys
from datetime import date, datetime

import structlog

from src.booking.dates import to_yyyymmdd


def render_days(logger, method_name: str, event_dict: dict) -> dict:
    """Render plain date values as 'YYYY-MM-DD'; datetimes are left alone."""
    for key, value in event_dict.items():
        if isinstance(value, date) and not isinstance(value, datetime):
            event_dict[key] = to_yyyymmdd(value)
    return event_dict


def setup_logging(json_output: bool = False, log_level: str = "INFO", **context) -> None:
    """Configure structlog for the process.

    Args:
        json_output: If True, output JSON (production). If False, console format (dev).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        **context: Key/values bound to every event of the process, e.g. the
            script name and the store backend.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        render_days,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # stdout is reserved for script reports
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if context:
        structlog.contextvars.bind_contextvars(**context)

    # requests/urllib3 log through stdlib
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(numeric_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger for a booking module (pass __name__)."""
    return structlog.get_logger(name)
