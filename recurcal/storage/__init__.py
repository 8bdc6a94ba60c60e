"""Event storage backends."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .base import EventStore
from .json_store import JsonFileEventStore
from .memory_store import InMemoryEventStore

if TYPE_CHECKING:
    from ..core.config_loader import Config

logger = logging.getLogger(__name__)

DEFAULT_JSON_STORE = "recurcal_events.json"


def create_store(config: Config) -> EventStore:
    """Build the store selected by ``config.store_backend``."""
    if config.store_backend == "json":
        path = Path(config.store_path or DEFAULT_JSON_STORE)
        logger.info("Using JSON event store at %s", path)
        return JsonFileEventStore(path)

    logger.info("Using in-memory event store")
    return InMemoryEventStore()


__all__ = ["EventStore", "InMemoryEventStore", "JsonFileEventStore", "create_store"]
