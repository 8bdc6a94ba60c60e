"""
Console logging for recurcal.

One colored handler on the root logger. Each line carries the id of the HTTP
request it was logged under, or ``no-request-id`` outside of a request::

    09:14:02 INFO    [5f0c...] recurcal.domain.instance_mutator: Deleted occurrence ...
"""

import logging
import os
import sys
from contextvars import ContextVar
from typing import Optional

from colorlog import ColoredFormatter

NO_REQUEST_ID = "no-request-id"

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# aiohttp logs a line per request at INFO
QUIET_LOGGERS = ("aiohttp.access", "aiohttp.server", "asyncio")

# Set by the correlation id middleware for the duration of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_console_handler: Optional[logging.Handler] = None


def get_request_id() -> str:
    """Correlation id of the request being handled, or ``no-request-id``."""
    return request_id_var.get() or NO_REQUEST_ID


class CorrelationIdFilter(logging.Filter):
    """Stamp ``request_id`` on records so LOG_FORMAT can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


def resolve_level(level_name: Optional[str] = None, debug: bool = False) -> int:
    """Pick the level to log at.

    RECURCAL_DEBUG (1/true/yes/on) or ``debug`` forces DEBUG. Otherwise
    RECURCAL_LOG_LEVEL wins over ``level_name``; unknown names mean INFO.
    """
    if debug or os.getenv("RECURCAL_DEBUG", "").strip().lower() in ("1", "true", "yes", "on"):
        return logging.DEBUG

    name = (os.getenv("RECURCAL_LOG_LEVEL") or level_name or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: Optional[str] = None, debug: bool = False) -> int:
    """Install the console handler once and apply levels.

    Safe to call again after configuration is loaded; later calls only
    change levels.

    Returns:
        The level applied to the root and ``recurcal`` loggers
    """
    global _console_handler

    level = resolve_level(level_name, debug)
    root = logging.getLogger()

    if _console_handler is None or _console_handler not in root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)
        _console_handler = handler

    root.setLevel(level)
    logging.getLogger("recurcal").setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).debug("Logging at %s", logging.getLevelName(level))
    return level


def get_logging_status() -> dict[str, str]:
    """Current level names of the root, recurcal and aiohttp access loggers."""
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("recurcal", "aiohttp.access"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
