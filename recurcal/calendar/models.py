"""Data models for stored events, exceptions and expanded occurrences."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.time_utils import to_naive_local
from ..exceptions import EventValidationError

INDEFINITE = "indefinite"
RECUR_DELIMITER = "-recur-"
INSTANCE_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
DAY_KEY_FORMAT = "%Y-%m-%d"


class RecurrencePattern(str, Enum):
    """Supported recurrence step sizes."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ExceptionType(str, Enum):
    """How an occurrence deviates from its series."""

    DELETED = "deleted"
    MODIFIED = "modified"


class _CamelModel(BaseModel):
    """Base model exposing camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


def _serialize_optional_datetime(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _naive_local(dt: Optional[datetime]) -> Optional[datetime]:
    # Offsets sent by clients are folded into naive local time
    return to_naive_local(dt) if dt is not None else None


class CalendarEvent(_CamelModel):
    """A stored event record.

    Covers both user-authored master events and standalone modified events;
    the latter carry ``parent_event_id`` and ``original_date``.
    """

    id: str = Field(..., description="Event ID")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(default=None, description="Event description")

    start_date: datetime = Field(..., description="Start of the first (or only) occurrence")
    end_date: Optional[datetime] = Field(default=None, description="End of the first occurrence")

    # Recurrence, stored as text like "4" or "indefinite"
    is_recurring: bool = Field(default=False, description="Recurring series flag")
    recurring_pattern: Optional[str] = Field(default=None, description="daily/weekly/monthly/yearly")
    recurring_weeks: Optional[str] = Field(default=None, description="Series length in weeks")

    # Standalone modified instances
    parent_event_id: Optional[str] = Field(default=None, description="Series this record was edited from")
    original_date: Optional[datetime] = Field(
        default=None, description="Undeviated occurrence date for edited instances"
    )

    created_at: datetime = Field(..., description="Creation time")

    @field_validator("start_date", "end_date", "original_date", "created_at")
    @classmethod
    def _dates_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_local(value)

    @field_validator("recurring_weeks", mode="before")
    @classmethod
    def _weeks_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_standalone_instance(self) -> bool:
        """True for records created by editing a single occurrence."""
        return self.parent_event_id is not None

    @property
    def duration(self) -> Optional[timedelta]:
        """Length of one occurrence, or None when the event has no end."""
        if self.end_date is None:
            return None
        return self.end_date - self.start_date

    @field_serializer("start_date", "created_at")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    @field_serializer("end_date", "original_date")
    def serialize_optional_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        """Serialize optional datetime fields to ISO format."""
        return _serialize_optional_datetime(dt)


class Occurrence(CalendarEvent):
    """One concrete occurrence returned to callers; never persisted."""

    is_generated: bool = Field(
        default=False, description="True if produced by series expansion"
    )


class EventException(_CamelModel):
    """Marks one occurrence of a series as deleted or modified."""

    id: str = Field(..., description="Exception ID")
    parent_event_id: str = Field(..., description="Series the exception applies to")
    exception_date: datetime = Field(..., description="Original, undeviated occurrence date")
    type: ExceptionType = Field(..., description="deleted or modified")
    modified_event_id: Optional[str] = Field(
        default=None, description="Standalone event holding the edited occurrence"
    )
    created_at: datetime = Field(..., description="Creation time")

    @field_validator("exception_date", "created_at")
    @classmethod
    def _dates_naive(cls, value: datetime) -> datetime:
        return to_naive_local(value)

    @model_validator(mode="after")
    def _check_modified_link(self) -> "EventException":
        is_modified = self.type == ExceptionType.MODIFIED.value
        if is_modified and not self.modified_event_id:
            raise ValueError("modified exceptions require modified_event_id")
        if not is_modified and self.modified_event_id:
            raise ValueError("only modified exceptions may carry modified_event_id")
        return self

    @property
    def day_key(self) -> str:
        """Calendar-day key the exception applies to."""
        return day_key(self.exception_date)

    @field_serializer("exception_date", "created_at")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class EventDraft(_CamelModel):
    """Payload for creating a new event or series."""

    title: str = Field(..., description="Event title")
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    is_recurring: bool = False
    recurring_pattern: Optional[RecurrencePattern] = None
    recurring_weeks: Optional[Union[int, Literal["indefinite"]]] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_local(value)

    @field_validator("recurring_weeks", mode="before")
    @classmethod
    def _parse_weeks(cls, value: object) -> object:
        if isinstance(value, str):
            text = value.strip().lower()
            if text == INDEFINITE:
                return INDEFINITE
            try:
                return int(text)
            except ValueError as e:
                raise ValueError("recurring_weeks must be a number of weeks or 'indefinite'") from e
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "EventDraft":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.is_recurring:
            if self.recurring_pattern is None:
                raise ValueError("recurring events require recurring_pattern")
            if self.recurring_weeks is None:
                raise ValueError("recurring events require recurring_weeks")
            if self.recurring_weeks != INDEFINITE and self.recurring_weeks <= 0:  # type: ignore[operator]
                raise ValueError("recurring_weeks must be positive")
        else:
            # Non-recurring events never carry recurrence details
            self.recurring_pattern = None
            self.recurring_weeks = None
        return self

    def stored_weeks(self) -> Optional[str]:
        """Week count in its stored text form."""
        return None if self.recurring_weeks is None else str(self.recurring_weeks)


class EventUpdate(_CamelModel):
    """Partial update; only fields explicitly sent are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[RecurrencePattern] = None
    recurring_weeks: Optional[Union[int, Literal["indefinite"]]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _dates_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_local(value)

    def changes(self) -> dict[str, object]:
        """Explicitly-set fields keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class ExpansionResult(BaseModel):
    """Outcome of one expansion pass."""

    occurrences: list[Occurrence] = Field(default_factory=list)
    window_start: datetime
    window_end: datetime
    bounded: bool = False
    warnings: list[str] = Field(default_factory=list, description="Integrity warnings")
    truncated_series: list[str] = Field(
        default_factory=list, description="Master ids cut off by the iteration cap"
    )

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)


def day_key(instant: datetime) -> str:
    """Normalize an instant to its calendar day, e.g. "2024-03-11"."""
    return instant.strftime(DAY_KEY_FORMAT)


def make_instance_id(master_id: str, instant: datetime) -> str:
    """Build the reproducible id of a generated occurrence."""
    return f"{master_id}{RECUR_DELIMITER}{instant.strftime(INSTANCE_TIMESTAMP_FORMAT)}"


def parse_instance_id(instance_id: str) -> Optional[tuple[str, datetime]]:
    """Split an occurrence id back into (master_id, occurrence_date).

    Returns None for plain event ids.

    Raises:
        EventValidationError: If the id has the delimiter but no readable timestamp
    """
    master_id, sep, stamp = instance_id.rpartition(RECUR_DELIMITER)
    if not sep:
        return None
    if not master_id:
        raise EventValidationError(f"Instance id has no master id: {instance_id!r}")
    try:
        return master_id, datetime.strptime(stamp, INSTANCE_TIMESTAMP_FORMAT)
    except ValueError as e:
        raise EventValidationError(f"Instance id has an unreadable timestamp: {instance_id!r}") from e


def resolve_event_id(event_id: str) -> str:
    """Return the master id for either a plain id or an occurrence id."""
    parsed = parse_instance_id(event_id)
    return parsed[0] if parsed else event_id
