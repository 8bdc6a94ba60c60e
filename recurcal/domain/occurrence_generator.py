"""Materialize the occurrences of one recurring series inside a window."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..calendar.models import (
    INDEFINITE,
    CalendarEvent,
    ExpansionResult,
    Occurrence,
    RecurrencePattern,
    day_key,
    make_instance_id,
)
from ..calendar.stepper import first_index_at_or_after, is_known_pattern, nth_occurrence
from ..exceptions import IntegrityWarning
from .exception_index import ExceptionEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 500


class OccurrenceGenerator:
    """Expand a recurring master event into concrete occurrences.

    Occurrences are computed from the series anchor (the master's start date),
    so an occurrence keeps the same date and id whatever window it is read
    through. Each series is bounded by ``max_iterations`` steps.
    """

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        self.max_iterations = max_iterations

    def generate(
        self,
        master: CalendarEvent,
        window_start: datetime,
        window_end: datetime,
        entry: ExceptionEntry,
        result: Optional[ExpansionResult] = None,
    ) -> list[Occurrence]:
        """Return the occurrences of ``master`` in [window_start, window_end).

        Args:
            master: Recurring master event
            window_start: Inclusive lower bound
            window_end: Exclusive upper bound
            entry: Deleted/modified day keys for this series
            result: Optional expansion result collecting integrity warnings

        Returns:
            Occurrences in chronological order, shadowed days omitted
        """
        pattern = self._resolve_pattern(master, result)
        series_end = self._series_end(master, window_end, result)
        if series_end is None:
            return []

        anchor = master.start_date
        lower = max(anchor, window_start)
        index = first_index_at_or_after(anchor, pattern, lower)
        cursor = nth_occurrence(anchor, pattern, index)
        duration = master.duration

        occurrences: list[Occurrence] = []
        iterations = 0
        while cursor < series_end:
            if iterations >= self.max_iterations:
                self._warn(
                    result,
                    f"Series {master.id} truncated after {self.max_iterations} iterations",
                )
                if result is not None:
                    result.truncated_series.append(master.id)
                break
            iterations += 1

            if not entry.is_shadowed(day_key(cursor)):
                occurrences.append(self._make_occurrence(master, cursor, duration))

            index += 1
            cursor = nth_occurrence(anchor, pattern, index)

        logger.debug(
            "Expanded series %s: %d occurrences in %d iterations",
            master.id,
            len(occurrences),
            iterations,
        )
        return occurrences

    def _make_occurrence(
        self, master: CalendarEvent, cursor: datetime, duration: Optional[timedelta]
    ) -> Occurrence:
        return Occurrence(
            id=make_instance_id(master.id, cursor),
            title=master.title,
            description=master.description,
            start_date=cursor,
            end_date=cursor + duration if duration is not None else None,
            is_recurring=master.is_recurring,
            recurring_pattern=master.recurring_pattern,
            recurring_weeks=master.recurring_weeks,
            parent_event_id=master.id,
            original_date=cursor,
            created_at=master.created_at,
            is_generated=True,
        )

    def _resolve_pattern(self, master: CalendarEvent, result: Optional[ExpansionResult]) -> str:
        if is_known_pattern(master.recurring_pattern):
            return str(master.recurring_pattern).strip().lower()
        self._warn(
            result,
            f"Series {master.id} has unknown recurrence pattern "
            f"{master.recurring_pattern!r}; stepping weekly",
        )
        return RecurrencePattern.WEEKLY.value

    def _series_end(
        self,
        master: CalendarEvent,
        window_end: datetime,
        result: Optional[ExpansionResult],
    ) -> Optional[datetime]:
        """Return the exclusive end of the series within the window.

        None means the series produces nothing.
        """
        raw = master.recurring_weeks
        if raw is None:
            self._warn(result, f"Series {master.id} has no week count; treating as indefinite")
            return window_end

        text = str(raw).strip().lower()
        if text == INDEFINITE:
            return window_end

        try:
            weeks = int(text)
        except ValueError:
            self._warn(result, f"Series {master.id} has unreadable week count {raw!r}; skipping")
            return None

        if weeks <= 0:
            logger.debug("Series %s has non-positive week count %d; no occurrences", master.id, weeks)
            return None

        return min(window_end, master.start_date + timedelta(weeks=weeks))

    @staticmethod
    def _warn(result: Optional[ExpansionResult], message: str) -> None:
        warning = IntegrityWarning(message)
        logger.warning("%s", warning)
        if result is not None:
            result.add_warning(str(warning))
