"""Shared fixtures for recurcal tests."""

from collections.abc import Generator
from datetime import datetime
from typing import Any

import pytest

from recurcal.core.time_utils import TEST_TIME_ENV
from recurcal.storage.memory_store import InMemoryEventStore

_RECURCAL_ENV_KEYS = (
    TEST_TIME_ENV,
    "RECURCAL_DEBUG",
    "RECURCAL_LOG_LEVEL",
    "RECURCAL_WEB_HOST",
    "RECURCAL_WEB_PORT",
    "RECURCAL_STORE",
    "RECURCAL_STORE_PATH",
    "RECURCAL_WINDOW_MONTHS",
    "RECURCAL_MAX_ITERATIONS",
    "RECURCAL_WINDOW_MODIFIED_INSTANCES",
)


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests spanning the HTTP layer and storage")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear RECURCAL_* variables so tests see the real clock and default config.

    Tests that need a frozen clock set RECURCAL_TEST_TIME themselves (or use
    ``frozen_now``); monkeypatch restores everything afterwards.
    """
    for key in _RECURCAL_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def frozen_now(monkeypatch: Any) -> datetime:
    """Freeze the service clock at 2024-03-01 08:00."""
    monkeypatch.setenv(TEST_TIME_ENV, "2024-03-01T08:00:00")
    return datetime(2024, 3, 1, 8, 0)


@pytest.fixture
def store() -> InMemoryEventStore:
    """Empty in-memory event store."""
    return InMemoryEventStore()
