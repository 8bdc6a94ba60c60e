"""Abstract storage interface for events and their exceptions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..calendar.models import CalendarEvent, EventException


class EventStore(ABC):
    """Persistence contract used by the expansion and mutation code.

    Implementations own atomicity: each method is one read-modify-write on
    the underlying records, and ``snapshot`` returns events and exceptions
    read together so an expansion never sees half of a mutation.
    """

    name: str

    @abstractmethod
    def snapshot(self) -> tuple[list[CalendarEvent], list[EventException]]:
        """Return all events and all exceptions from one consistent read."""
        ...

    def fetch_masters(self) -> list[CalendarEvent]:
        """Return every stored event (masters and standalone instances)."""
        return self.snapshot()[0]

    def fetch_exceptions(self) -> list[EventException]:
        """Return every stored exception."""
        return self.snapshot()[1]

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        """Return the stored event with ``event_id``, or None."""
        ...

    @abstractmethod
    def add_event(self, event: CalendarEvent) -> CalendarEvent:
        """Insert a new event record."""
        ...

    @abstractmethod
    def update_event(self, event: CalendarEvent) -> CalendarEvent:
        """Replace an existing event record (matched by id).

        Raises:
            EventNotFoundError: If no event has that id
        """
        ...

    @abstractmethod
    def delete_event(self, event_id: str) -> bool:
        """Delete an event and cascade to everything referencing it.

        Removes exceptions whose parent or modified event is ``event_id`` and
        standalone instances whose parent is ``event_id``.

        Returns:
            True if the event existed
        """
        ...

    @abstractmethod
    def find_exception(self, parent_event_id: str, day: str) -> Optional[EventException]:
        """Return the exception for a series on a day key, or None."""
        ...

    @abstractmethod
    def upsert_exception(self, exception: EventException) -> EventException:
        """Insert or replace the exception for (parent_event_id, day key)."""
        ...

    @abstractmethod
    def delete_exception(self, exception_id: str) -> bool:
        """Delete one exception by id. Returns True if it existed."""
        ...

    @abstractmethod
    def clear(self) -> int:
        """Remove everything and return the number of events removed."""
        ...
