"""In-memory event store."""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator
from typing import Optional

from ..calendar.models import CalendarEvent, EventException
from ..exceptions import EventNotFoundError
from .base import EventStore

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """Keeps events and exceptions in dictionaries guarded by one lock.

    Exceptions are keyed by (parent_event_id, day key), which makes the
    one-exception-per-occurrence rule a property of the container.

    Every change runs through ``_mutation()``: if ``_after_mutation`` fails,
    the dictionaries are put back as they were and the error propagates.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._events: dict[str, CalendarEvent] = {}
        self._exceptions: dict[tuple[str, str], EventException] = {}
        logger.debug("Initialized InMemoryEventStore")

    def snapshot(self) -> tuple[list[CalendarEvent], list[EventException]]:
        with self._lock:
            return list(self._events.values()), list(self._exceptions.values())

    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        with self._lock:
            return self._events.get(event_id)

    def add_event(self, event: CalendarEvent) -> CalendarEvent:
        with self._lock:
            if event.id in self._events:
                raise ValueError(f"Duplicate event id: {event.id}")
            with self._mutation():
                self._events[event.id] = event
        logger.debug("Stored event %s (%r)", event.id, event.title)
        return event

    def update_event(self, event: CalendarEvent) -> CalendarEvent:
        with self._lock:
            if event.id not in self._events:
                raise EventNotFoundError(event.id)
            with self._mutation():
                self._events[event.id] = event
        logger.debug("Updated event %s", event.id)
        return event

    def delete_event(self, event_id: str) -> bool:
        with self._lock:
            if event_id not in self._events:
                logger.debug("Event %s not found for deletion", event_id)
                return False

            with self._mutation():
                del self._events[event_id]

                orphans = [
                    key
                    for key, exc in self._exceptions.items()
                    if event_id in (exc.parent_event_id, exc.modified_event_id)
                ]
                for key in orphans:
                    del self._exceptions[key]

                children = [eid for eid, ev in self._events.items() if ev.parent_event_id == event_id]
                for eid in children:
                    del self._events[eid]

        logger.info(
            "Deleted event %s (cascade: %d exceptions, %d instances)",
            event_id,
            len(orphans),
            len(children),
        )
        return True

    def find_exception(self, parent_event_id: str, day: str) -> Optional[EventException]:
        with self._lock:
            return self._exceptions.get((parent_event_id, day))

    def upsert_exception(self, exception: EventException) -> EventException:
        with self._lock:
            if exception.parent_event_id not in self._events:
                raise EventNotFoundError(exception.parent_event_id)
            with self._mutation():
                self._exceptions[(exception.parent_event_id, exception.day_key)] = exception
        logger.debug(
            "Recorded %s exception for %s on %s",
            exception.type,
            exception.parent_event_id,
            exception.day_key,
        )
        return exception

    def delete_exception(self, exception_id: str) -> bool:
        with self._lock:
            key = next((k for k, exc in self._exceptions.items() if exc.id == exception_id), None)
            if key is None:
                return False
            with self._mutation():
                del self._exceptions[key]
        return True

    def clear(self) -> int:
        with self._lock:
            count = len(self._events)
            with self._mutation():
                self._events = {}
                self._exceptions = {}
        logger.info("Cleared event store (%d events)", count)
        return count

    @contextlib.contextmanager
    def _mutation(self) -> Iterator[None]:
        """Apply the enclosed change, then commit it through ``_after_mutation``."""
        with self._lock:
            events, exceptions = dict(self._events), dict(self._exceptions)
            try:
                yield
                self._after_mutation()
            except Exception:
                self._events, self._exceptions = events, exceptions
                logger.debug("Rolled back event store change")
                raise

    def _after_mutation(self) -> None:
        """Hook run with the lock held after every change."""
