"""Calendar arithmetic for recurrence patterns.

Month and year steps use ``dateutil.relativedelta``, which clamps the day of
month to the last valid day instead of overflowing: Jan 31 + 1 month is
Feb 29 in 2024 (Feb 28 otherwise), and Feb 29 + 1 year is Feb 28.

Stepping repeatedly from a clamped date would drift (Jan 31 -> Feb 29 ->
Mar 29), so series expansion computes every occurrence from the series
anchor with ``nth_occurrence`` instead: Jan 31 -> Feb 29 -> Mar 31 -> Apr 30.
"""

from __future__ import annotations

import logging
from datetime import datetime

from dateutil.relativedelta import relativedelta

from ..exceptions import IntegrityWarning
from .models import RecurrencePattern

logger = logging.getLogger(__name__)

_STEPS: dict[str, relativedelta] = {
    RecurrencePattern.DAILY.value: relativedelta(days=1),
    RecurrencePattern.WEEKLY.value: relativedelta(weeks=1),
    RecurrencePattern.MONTHLY.value: relativedelta(months=1),
    RecurrencePattern.YEARLY.value: relativedelta(years=1),
}

# Approximate step length in days, used only to estimate how far to jump
_APPROX_DAYS: dict[str, float] = {
    RecurrencePattern.DAILY.value: 1.0,
    RecurrencePattern.WEEKLY.value: 7.0,
    RecurrencePattern.MONTHLY.value: 365.2425 / 12,
    RecurrencePattern.YEARLY.value: 365.2425,
}


def is_known_pattern(pattern: object) -> bool:
    """Return True if ``pattern`` names a supported recurrence step."""
    return _normalize(pattern) in _STEPS


def _normalize(pattern: object) -> str:
    if isinstance(pattern, RecurrencePattern):
        return pattern.value
    return str(pattern).strip().lower() if pattern is not None else ""


def step_for(pattern: object) -> relativedelta:
    """Return the step for ``pattern``, defaulting to one week.

    An unrecognized pattern is a data-integrity problem, not a fatal one: it is
    logged as an IntegrityWarning and the series steps weekly.
    """
    key = _normalize(pattern)
    step = _STEPS.get(key)
    if step is None:
        logger.warning("%s", IntegrityWarning(f"Unknown recurrence pattern {pattern!r}; stepping weekly"))
        return _STEPS[RecurrencePattern.WEEKLY.value]
    return step


def next_occurrence(instant: datetime, pattern: object) -> datetime:
    """Return the occurrence following ``instant`` for ``pattern``."""
    return instant + step_for(pattern)


def nth_occurrence(anchor: datetime, pattern: object, index: int) -> datetime:
    """Return occurrence number ``index`` (0 = anchor) of a series."""
    if index == 0:
        return anchor
    return anchor + step_for(pattern) * index


def first_index_at_or_after(anchor: datetime, pattern: object, target: datetime) -> int:
    """Return the smallest index whose occurrence is at or after ``target``.

    Jumps close to the answer arithmetically and then corrects by single
    steps, so the cost does not grow with the distance from the anchor.
    """
    if target <= anchor:
        return 0

    days = _APPROX_DAYS.get(_normalize(pattern), _APPROX_DAYS[RecurrencePattern.WEEKLY.value])
    elapsed_days = (target - anchor).total_seconds() / 86400
    index = max(int(elapsed_days // days) - 1, 0)

    while index > 0 and nth_occurrence(anchor, pattern, index) >= target:
        index -= 1
    while nth_occurrence(anchor, pattern, index) < target:
        index += 1
    return index
