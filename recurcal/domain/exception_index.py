"""Per-series lookup of deleted and modified occurrence days."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..calendar.models import EventException, ExceptionType

logger = logging.getLogger(__name__)


@dataclass
class ExceptionEntry:
    """Day keys that must not be generated for one series."""

    deleted: set[str] = field(default_factory=set)
    modified: set[str] = field(default_factory=set)

    def is_shadowed(self, key: str) -> bool:
        """True if the occurrence on ``key`` is deleted or superseded by an edit."""
        return key in self.deleted or key in self.modified


_EMPTY_ENTRY = ExceptionEntry(deleted=frozenset(), modified=frozenset())  # type: ignore[arg-type]


class ExceptionIndex:
    """Exception lookup sets grouped by parent event id.

    A series with no exceptions gets a shared, immutable empty entry.
    """

    def __init__(self, entries: dict[str, ExceptionEntry] | None = None) -> None:
        self._entries: dict[str, ExceptionEntry] = entries or {}

    @classmethod
    def build(cls, exceptions: Iterable[EventException]) -> ExceptionIndex:
        """Group exceptions by parent and normalize their dates to day keys."""
        entries: dict[str, ExceptionEntry] = defaultdict(ExceptionEntry)
        count = 0
        for exc in exceptions:
            entry = entries[exc.parent_event_id]
            if exc.type == ExceptionType.DELETED:
                entry.deleted.add(exc.day_key)
            else:
                entry.modified.add(exc.day_key)
            count += 1

        logger.debug("Built exception index: %d exceptions across %d series", count, len(entries))
        return cls(dict(entries))

    def entry_for(self, parent_event_id: str) -> ExceptionEntry:
        """Return the entry for a series, empty if it has no exceptions."""
        return self._entries.get(parent_event_id, _EMPTY_ENTRY)

    def __contains__(self, parent_event_id: object) -> bool:
        return parent_event_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
