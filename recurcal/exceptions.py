"""Custom exception hierarchy for recurring-event operations.

Every error raised by the calendar core inherits from ``RecurcalError`` so
the HTTP layer can map the whole family in one place, while callers that care
about a specific failure can still catch the narrow type.
"""


class RecurcalError(Exception):
    """Base exception for all recurcal errors."""


class EventValidationError(RecurcalError):
    """An event draft or update is malformed.

    Raised when:
    - Title is empty
    - End date is before the start date
    - A recurring event lacks its pattern or week count
    - An instance id carries an unreadable timestamp

    Nothing is persisted when this is raised. Should result in HTTP 400.
    """


class EventNotFoundError(RecurcalError):
    """A mutation referenced an event id that does not exist.

    Should result in HTTP 404 Not Found response.
    """

    def __init__(self, event_id: str, message: str | None = None) -> None:
        self.event_id = event_id
        super().__init__(message or f"Event not found: {event_id}")


class OccurrenceNotFoundError(EventNotFoundError):
    """The series exists but has no usable occurrence on the requested day.

    Raised when:
    - The day is not part of the series (wrong weekday, before the start,
      past the week count)
    - The occurrence on that day was deleted
    """


class IntegrityWarning(RecurcalError):
    """Non-fatal data-integrity problem found while expanding a series.

    Raised when:
    - never; expansion instantiates it, logs it and carries on

    Covers unknown recurrence patterns (stepped weekly), unreadable week
    counts and series truncated by the iteration cap.
    """


class StorageError(RecurcalError):
    """Persisting or loading the event store failed."""
