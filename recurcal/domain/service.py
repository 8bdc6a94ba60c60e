"""Calendar service: the read and write entry points used by the HTTP layer."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Union

from ..calendar.models import (
    CalendarEvent,
    EventDraft,
    EventException,
    EventUpdate,
    ExpansionResult,
    Occurrence,
    parse_instance_id,
    resolve_event_id,
)
from ..core.config_loader import Config
from ..exceptions import EventNotFoundError, EventValidationError
from ..storage.base import EventStore
from .expansion import ExpansionCoordinator
from .instance_mutator import InstanceMutator
from .occurrence_generator import OccurrenceGenerator

logger = logging.getLogger(__name__)


class CalendarService:
    """Bind a store to the expansion and mutation logic.

    Accepts occurrence ids (``<masterId>-recur-<timestamp>``) wherever an event
    id is expected and routes them to the right series and date.
    """

    def __init__(self, store: EventStore, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.store = store
        self.coordinator = ExpansionCoordinator(
            generator=OccurrenceGenerator(self.config.max_iterations),
            default_window_months=self.config.default_window_months,
            window_modified_instances=self.config.window_modified_instances,
        )
        self.mutator = InstanceMutator(store)

    # Read path

    def list_occurrences_report(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> ExpansionResult:
        """Expand the store's current contents, keeping warnings and window details."""
        events, exceptions = self.store.snapshot()
        return self.coordinator.expand(events, exceptions, window_start, window_end)

    def list_occurrences(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[Occurrence]:
        """Return occurrences sorted by start date.

        Omit both bounds for the unbounded listing.
        """
        return self.list_occurrences_report(window_start, window_end).occurrences

    def get_event(self, event_id: str) -> CalendarEvent:
        """Return a stored event; occurrence ids resolve to their series.

        Raises:
            EventNotFoundError: If no such event is stored
        """
        master_id = resolve_event_id(event_id)
        event = self.store.get_event(master_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def event_count(self) -> int:
        return len(self.store.fetch_masters())

    # Write path

    def create_event(self, draft: Union[EventDraft, Mapping[str, Any]]) -> CalendarEvent:
        return self.mutator.create_series(draft)

    def update_event(
        self, event_id: str, updates: Union[EventUpdate, Mapping[str, Any]]
    ) -> CalendarEvent:
        """Edit a whole series (or single event); occurrence ids edit their series."""
        return self.mutator.edit_series(resolve_event_id(event_id), updates)

    def delete_event(self, event_id: str, instance_date: Optional[datetime] = None) -> None:
        """Delete a series, or one occurrence of it.

        One occurrence is deleted when ``instance_date`` is given or
        ``event_id`` is an occurrence id; otherwise the whole event goes.
        """
        parsed = parse_instance_id(event_id)
        if instance_date is None and parsed is not None:
            instance_date = parsed[1]

        if instance_date is not None:
            self.delete_instance(event_id, instance_date)
        else:
            self.mutator.delete_series(event_id)

    def delete_instance(self, event_id: str, instance_date: datetime) -> EventException:
        return self.mutator.delete_instance(resolve_event_id(event_id), instance_date)

    def edit_instance(
        self,
        event_id: str,
        updates: Union[EventUpdate, Mapping[str, Any]],
        instance_date: Optional[datetime] = None,
    ) -> CalendarEvent:
        """Edit one occurrence, taking its date from ``instance_date`` or the id.

        Raises:
            EventValidationError: If no occurrence date is available
        """
        parsed = parse_instance_id(event_id)
        if instance_date is None:
            if parsed is None:
                raise EventValidationError("instanceDate is required to edit a single occurrence")
            instance_date = parsed[1]
        return self.mutator.edit_instance(resolve_event_id(event_id), instance_date, updates)
