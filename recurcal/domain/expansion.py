"""Merge stored events, generated occurrences and edited instances into one list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..calendar.models import CalendarEvent, EventException, ExpansionResult, Occurrence
from ..core.time_utils import now_local
from ..exceptions import EventValidationError
from .exception_index import ExceptionIndex
from .occurrence_generator import DEFAULT_MAX_ITERATIONS, OccurrenceGenerator

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MONTHS = 6


def _as_occurrence(event: CalendarEvent) -> Occurrence:
    return Occurrence(**dict(event), is_generated=False)


def _in_range(event: CalendarEvent, start: datetime, end: datetime) -> bool:
    return start <= event.start_date <= end


class ExpansionCoordinator:
    """Produce the occurrence list for a set of events and exceptions.

    Reads are pure: the same inputs and window always give the same output,
    and nothing is written back to the store.

    Without a window the listing is unbounded: every non-recurring event and
    every edited instance is returned, and series are expanded over the
    default look-ahead from now. With a window, all three kinds are limited
    to it.
    """

    def __init__(
        self,
        generator: Optional[OccurrenceGenerator] = None,
        default_window_months: int = DEFAULT_WINDOW_MONTHS,
        window_modified_instances: bool = True,
    ) -> None:
        self.generator = generator or OccurrenceGenerator(DEFAULT_MAX_ITERATIONS)
        self.default_window_months = default_window_months
        self.window_modified_instances = window_modified_instances

    def default_window(self) -> tuple[datetime, datetime]:
        """Return [now, now + default_window_months)."""
        start = now_local()
        return start, start + relativedelta(months=self.default_window_months)

    def expand(
        self,
        events: Iterable[CalendarEvent],
        exceptions: Iterable[EventException],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> ExpansionResult:
        """Expand ``events`` into occurrences.

        Args:
            events: Stored events, masters and edited instances alike
            exceptions: Stored exceptions for those events
            window_start: Start of a bounded query; omit both bounds for an
                unbounded listing
            window_end: End of a bounded query

        Returns:
            ExpansionResult with occurrences sorted by start date

        Raises:
            EventValidationError: If only one bound is given or start > end
        """
        bounded = window_start is not None or window_end is not None
        if bounded:
            if window_start is None or window_end is None:
                raise EventValidationError("Both window_start and window_end are required")
            if window_start > window_end:
                raise EventValidationError("window_start must not be after window_end")
            start, end = window_start, window_end
        else:
            start, end = self.default_window()

        result = ExpansionResult(window_start=start, window_end=end, bounded=bounded)
        index = ExceptionIndex.build(exceptions)

        occurrences: list[Occurrence] = []
        masters = 0
        standalones = 0
        for event in events:
            if event.is_standalone_instance:
                standalones += 1
                if bounded and self.window_modified_instances and not _in_range(event, start, end):
                    continue
                occurrences.append(_as_occurrence(event))
            elif event.is_recurring:
                masters += 1
                occurrences.extend(
                    self.generator.generate(event, start, end, index.entry_for(event.id), result)
                )
            else:
                if bounded and not _in_range(event, start, end):
                    continue
                occurrences.append(_as_occurrence(event))

        # sorted() is stable, so equal start dates keep store order
        result.occurrences = sorted(occurrences, key=lambda o: o.start_date)

        logger.debug(
            "Expanded %d series and %d edited instances into %d occurrences (%s to %s, bounded=%s)",
            masters,
            standalones,
            len(result.occurrences),
            start.isoformat(),
            end.isoformat(),
            bounded,
        )
        return result

    def list_occurrences(
        self,
        events: Iterable[CalendarEvent],
        exceptions: Iterable[EventException],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[Occurrence]:
        """Shortcut for ``expand(...).occurrences``."""
        return self.expand(events, exceptions, window_start, window_end).occurrences
