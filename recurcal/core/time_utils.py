"""Clock helpers for naive local time.

All scheduling in recurcal uses naive local datetimes. The current time can be
frozen for tests through the ``RECURCAL_TEST_TIME`` environment variable.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "RECURCAL_TEST_TIME"


def to_naive_local(dt: datetime) -> datetime:
    """Drop timezone information, converting aware values to local time first."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def now_local() -> datetime:
    """Return the current naive local time.

    Can be overridden for testing via RECURCAL_TEST_TIME.
    Format: ISO 8601 datetime string (e.g., "2024-03-01T08:00:00")
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            return to_naive_local(date_parser.isoparse(test_time))
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.now()


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into a naive local datetime.

    Raises:
        ValueError: If the string is not a valid ISO-8601 date or datetime
    """
    try:
        return to_naive_local(date_parser.isoparse(value.strip()))
    except OverflowError as e:
        raise ValueError(f"Datetime out of range: {value!r}") from e
