"""Write path: single-occurrence and whole-series edits and deletes."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from datetime import datetime, time, timedelta
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..calendar.models import (
    INDEFINITE,
    CalendarEvent,
    EventDraft,
    EventException,
    EventUpdate,
    ExceptionType,
    day_key,
)
from ..calendar.stepper import first_index_at_or_after, nth_occurrence
from ..core.time_utils import now_local
from ..exceptions import EventNotFoundError, EventValidationError, OccurrenceNotFoundError
from ..storage.base import EventStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Fields an edited occurrence may override; recurrence stays with the series
_INSTANCE_FIELDS = ("title", "description", "start_date", "end_date")
_SERIES_FIELDS = _INSTANCE_FIELDS + ("is_recurring", "recurring_pattern", "recurring_weeks")


def _new_id() -> str:
    return str(uuid.uuid4())


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def validate_model(model: type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Validate ``data`` as ``model``, raising EventValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise EventValidationError(_format_validation_error(exc)) from exc


class InstanceMutator:
    """Apply user edits to stored series.

    Single-occurrence changes never touch the master record: a delete writes a
    ``deleted`` exception, an edit writes a standalone event plus a
    ``modified`` exception pointing at it. There is at most one exception per
    series per calendar day; repeating an operation on the same day updates
    that exception instead of adding another.

    Mutations are serialized through one lock so a multi-record change is
    never interleaved with another.
    """

    def __init__(self, store: EventStore) -> None:
        self.store = store
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Whole series
    # ------------------------------------------------------------------

    def create_series(self, draft: Union[EventDraft, Mapping[str, Any]]) -> CalendarEvent:
        """Validate a draft and store it as a new event.

        Raises:
            EventValidationError: If the draft is malformed
        """
        valid = validate_model(EventDraft, draft)
        event = CalendarEvent(
            id=_new_id(),
            title=valid.title,
            description=valid.description,
            start_date=valid.start_date,
            end_date=valid.end_date,
            is_recurring=valid.is_recurring,
            recurring_pattern=valid.recurring_pattern,
            recurring_weeks=valid.stored_weeks(),
            created_at=now_local(),
        )
        with self._lock:
            self.store.add_event(event)
        logger.info(
            "Created %s event %s (%r)",
            "recurring" if event.is_recurring else "single",
            event.id,
            event.title,
        )
        return event

    def edit_series(
        self, event_id: str, updates: Union[EventUpdate, Mapping[str, Any]]
    ) -> CalendarEvent:
        """Apply a partial update to a stored event and re-validate it.

        Turning a series into a single event discards its exceptions and
        edited instances. Edited instances cannot be made recurring.

        Raises:
            EventNotFoundError: If ``event_id`` does not exist
            EventValidationError: If the merged event is invalid
        """
        changes = validate_model(EventUpdate, updates).changes()

        with self._lock:
            event = self._require_event(event_id)
            if event.is_standalone_instance and changes.get("is_recurring"):
                raise EventValidationError("An edited occurrence cannot be made recurring")

            fields = _INSTANCE_FIELDS if event.is_standalone_instance else _SERIES_FIELDS
            merged: dict[str, Any] = {name: getattr(event, name) for name in fields}
            merged.update({k: v for k, v in changes.items() if k in fields})
            valid = validate_model(EventDraft, merged)

            updated = event.model_copy(
                update={
                    "title": valid.title,
                    "description": valid.description,
                    "start_date": valid.start_date,
                    "end_date": valid.end_date,
                    "is_recurring": valid.is_recurring,
                    "recurring_pattern": valid.recurring_pattern,
                    "recurring_weeks": valid.stored_weeks(),
                }
            )
            self.store.update_event(updated)

            if event.is_recurring and not updated.is_recurring:
                self._discard_series_overrides(event.id)

        logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)) or "no changes")
        return updated

    def delete_series(self, event_id: str) -> None:
        """Delete an event.

        For a master this cascades to its exceptions and edited instances.
        Deleting an edited instance removes it and leaves its occurrence
        hidden, as if that one occurrence had been deleted.

        Raises:
            EventNotFoundError: If ``event_id`` does not exist
        """
        with self._lock:
            event = self._require_event(event_id)

            parent_id = event.parent_event_id
            if parent_id and event.original_date is not None and self.store.get_event(parent_id):
                existing = self.store.find_exception(parent_id, day_key(event.original_date))
                deleted = EventException(
                    id=existing.id if existing else _new_id(),
                    parent_event_id=parent_id,
                    exception_date=event.original_date,
                    type=ExceptionType.DELETED,
                    created_at=now_local(),
                )
                self._retire_standalone(deleted, existing, event.id)
            else:
                self.store.delete_event(event.id)
        logger.info("Deleted event %s", event_id)

    # ------------------------------------------------------------------
    # Single occurrences
    # ------------------------------------------------------------------

    def delete_instance(self, parent_id: str, occurrence_date: datetime) -> EventException:
        """Hide one occurrence of a series.

        Deleting an already-deleted occurrence returns the existing exception.
        Deleting an edited occurrence removes its standalone event.

        Raises:
            EventNotFoundError: If the series does not exist
            OccurrenceNotFoundError: If the series has no occurrence that day
            EventValidationError: If ``parent_id`` is not a recurring series
        """
        with self._lock:
            parent = self._require_series(parent_id)
            instant = self._require_occurrence(parent, occurrence_date)
            key = day_key(instant)

            existing = self.store.find_exception(parent.id, key)
            if existing is not None and existing.type == ExceptionType.DELETED.value:
                logger.debug("Occurrence %s of %s already deleted", key, parent.id)
                return existing

            deleted = EventException(
                id=existing.id if existing else _new_id(),
                parent_event_id=parent.id,
                exception_date=instant,
                type=ExceptionType.DELETED,
                created_at=now_local(),
            )
            if existing is not None and existing.modified_event_id:
                exception = self._retire_standalone(deleted, existing, existing.modified_event_id)
            else:
                exception = self.store.upsert_exception(deleted)

        logger.info("Deleted occurrence %s of series %s", key, parent_id)
        return exception

    def edit_instance(
        self,
        parent_id: str,
        occurrence_date: datetime,
        updates: Union[EventUpdate, Mapping[str, Any]],
    ) -> CalendarEvent:
        """Edit one occurrence of a series and return its standalone event.

        The first edit of a day creates the standalone event; later edits of
        the same day update it in place.

        Raises:
            EventNotFoundError: If the series does not exist
            OccurrenceNotFoundError: If the occurrence does not exist or was deleted
            EventValidationError: If the edit is invalid or ``parent_id`` is not
                a recurring series
        """
        changes = validate_model(EventUpdate, updates).changes()
        if changes.get("is_recurring"):
            raise EventValidationError("An edited occurrence cannot be made recurring")
        overrides = {k: v for k, v in changes.items() if k in _INSTANCE_FIELDS}

        with self._lock:
            parent = self._require_series(parent_id)
            instant = self._require_occurrence(parent, occurrence_date)
            key = day_key(instant)

            existing = self.store.find_exception(parent.id, key)
            if existing is not None and existing.type == ExceptionType.DELETED.value:
                raise OccurrenceNotFoundError(
                    parent.id, f"Occurrence of {parent.id} on {key} was deleted"
                )

            current = None
            if existing is not None and existing.modified_event_id:
                current = self.store.get_event(existing.modified_event_id)

            if current is not None:
                standalone = self._apply_to_standalone(current, overrides)
                self.store.update_event(standalone)
                logger.info("Updated edited occurrence %s of series %s", key, parent.id)
                return standalone

            standalone = self._build_standalone(parent, instant, overrides)
            self.store.add_event(standalone)
            try:
                self.store.upsert_exception(
                    EventException(
                        id=existing.id if existing else _new_id(),
                        parent_event_id=parent.id,
                        exception_date=instant,
                        type=ExceptionType.MODIFIED,
                        modified_event_id=standalone.id,
                        created_at=now_local(),
                    )
                )
            except Exception:
                logger.warning("Removing edited occurrence %s after failed write", standalone.id)
                self.store.delete_event(standalone.id)
                raise

        logger.info("Edited occurrence %s of series %s as %s", key, parent_id, standalone.id)
        return standalone

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_event(self, event_id: str) -> CalendarEvent:
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _require_series(self, parent_id: str) -> CalendarEvent:
        parent = self._require_event(parent_id)
        if parent.is_standalone_instance:
            raise EventValidationError(f"Event {parent_id} is an edited occurrence, not a series")
        if not parent.is_recurring:
            raise EventValidationError(f"Event {parent_id} is not recurring")
        return parent

    def _require_occurrence(self, parent: CalendarEvent, occurrence_date: datetime) -> datetime:
        """Return the series occurrence falling on the same day as ``occurrence_date``."""
        instant = occurrence_on_day(parent, occurrence_date)
        if instant is None:
            raise OccurrenceNotFoundError(
                parent.id,
                f"Series {parent.id} has no occurrence on {day_key(occurrence_date)}",
            )
        return instant

    def _build_standalone(
        self, parent: CalendarEvent, instant: datetime, overrides: dict[str, Any]
    ) -> CalendarEvent:
        start = overrides.get("start_date") or instant
        if "end_date" in overrides:
            end = overrides["end_date"]
        else:
            duration = parent.duration
            end = start + duration if duration is not None else None

        valid = validate_model(
            EventDraft,
            {
                "title": overrides.get("title", parent.title),
                "description": overrides.get("description", parent.description),
                "start_date": start,
                "end_date": end,
            },
        )
        return CalendarEvent(
            id=_new_id(),
            title=valid.title,
            description=valid.description,
            start_date=valid.start_date,
            end_date=valid.end_date,
            is_recurring=False,
            parent_event_id=parent.id,
            original_date=instant,
            created_at=now_local(),
        )

    def _apply_to_standalone(
        self, current: CalendarEvent, overrides: dict[str, Any]
    ) -> CalendarEvent:
        merged = {name: getattr(current, name) for name in _INSTANCE_FIELDS}
        merged.update(overrides)
        # A moved start keeps the occurrence's length unless a new end is given
        duration = current.duration
        if overrides.get("start_date") and "end_date" not in overrides and duration is not None:
            merged["end_date"] = overrides["start_date"] + duration
        valid = validate_model(EventDraft, merged)
        return current.model_copy(
            update={
                "title": valid.title,
                "description": valid.description,
                "start_date": valid.start_date,
                "end_date": valid.end_date,
            }
        )

    def _retire_standalone(
        self,
        deleted: EventException,
        previous: Optional[EventException],
        standalone_id: str,
    ) -> EventException:
        """Mark the day deleted, then drop its standalone event.

        If dropping the standalone fails, the day's previous exception is put
        back before the error propagates.
        """
        recorded = self.store.upsert_exception(deleted)
        try:
            self.store.delete_event(standalone_id)
        except Exception:
            logger.warning("Restoring exception %s after failed delete of %s", deleted.id, standalone_id)
            if previous is not None:
                self.store.upsert_exception(previous)
            else:
                self.store.delete_exception(deleted.id)
            raise
        return recorded

    def _discard_series_overrides(self, series_id: str) -> None:
        events, exceptions = self.store.snapshot()
        for exc in exceptions:
            if exc.parent_event_id == series_id:
                self.store.delete_exception(exc.id)
        for event in events:
            if event.parent_event_id == series_id:
                self.store.delete_event(event.id)
        logger.info("Discarded exceptions and edited occurrences of %s", series_id)


def occurrence_on_day(series: CalendarEvent, when: datetime) -> Optional[datetime]:
    """Return the occurrence of ``series`` on the calendar day of ``when``, or None.

    Only the series' own length limits the answer; query windows play no part.
    """
    day_start = datetime.combine(when.date(), time.min)
    pattern = series.recurring_pattern
    index = first_index_at_or_after(series.start_date, pattern, day_start)
    candidate = nth_occurrence(series.start_date, pattern, index)
    if day_key(candidate) != day_key(when):
        return None

    weeks = str(series.recurring_weeks).strip().lower() if series.recurring_weeks else INDEFINITE
    if weeks != INDEFINITE:
        try:
            limit = int(weeks)
        except ValueError:
            return None
        if limit <= 0 or candidate >= series.start_date + timedelta(weeks=limit):
            return None
    return candidate
