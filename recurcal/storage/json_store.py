"""JSON-file event store with atomic writes."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..calendar.models import CalendarEvent, EventException
from ..exceptions import StorageError
from .memory_store import InMemoryEventStore

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1


class JsonFileEventStore(InMemoryEventStore):
    """In-memory store that rewrites a JSON file after every mutation.

    The on-disk format is a JSON object::

        {"version": 1, "events": [...], "exceptions": [...]}

    with records in their camelCase wire shape. Writes go to a temporary file
    in the same directory which is then moved into place, so a crash never
    leaves a half-written file behind.
    """

    name = "json"

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Create a JsonFileEventStore.

        Args:
            path: JSON file to load from and persist to. Created on first write.

        Raises:
            StorageError: If the file exists but cannot be read as a store
        """
        super().__init__()
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory for {self._path}: {exc}") from exc
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Replace the in-memory contents with what is on disk.

        Individual malformed records are skipped with a warning.
        """
        with self._lock:
            if not self._path.exists():
                logger.debug("Event store file not found; starting empty: %s", self._path)
                self._events = {}
                self._exceptions = {}
                return

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                raise StorageError(f"Failed to read event store {self._path}: {exc}") from exc
            if not isinstance(data, dict):
                raise StorageError(f"Event store {self._path} must contain a JSON object")

            events: dict[str, CalendarEvent] = {}
            for raw in data.get("events", []):
                try:
                    event = CalendarEvent.model_validate(raw)
                except ValidationError as exc:
                    logger.warning("Skipping malformed event in %s: %s", self._path, exc)
                    continue
                events[event.id] = event

            exceptions: dict[tuple[str, str], EventException] = {}
            for raw in data.get("exceptions", []):
                try:
                    exc_record = EventException.model_validate(raw)
                except ValidationError as exc:
                    logger.warning("Skipping malformed exception in %s: %s", self._path, exc)
                    continue
                if exc_record.parent_event_id not in events:
                    logger.warning(
                        "Skipping orphaned exception %s (parent %s missing)",
                        exc_record.id,
                        exc_record.parent_event_id,
                    )
                    continue
                exceptions[(exc_record.parent_event_id, exc_record.day_key)] = exc_record

            self._events = events
            self._exceptions = exceptions
            logger.debug(
                "Loaded event store %s (%d events, %d exceptions)",
                self._path,
                len(events),
                len(exceptions),
            )

    def _after_mutation(self) -> None:
        self._persist()

    def _serialize(self) -> dict[str, Any]:
        return {
            "version": FILE_FORMAT_VERSION,
            "events": [e.model_dump(mode="json", by_alias=True) for e in self._events.values()],
            "exceptions": [
                x.model_dump(mode="json", by_alias=True) for x in self._exceptions.values()
            ],
        }

    def _persist(self) -> None:
        """Write the current contents to disk atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        data = self._serialize()
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise StorageError(f"Failed to persist event store to {self._path}: {exc}") from exc
        logger.debug("Persisted event store %s", self._path)
