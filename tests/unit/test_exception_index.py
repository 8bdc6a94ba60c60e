"""Tests for the per-series exception index."""

from datetime import datetime

import pytest

from recurcal.calendar.models import EventException, ExceptionType
from recurcal.domain.exception_index import ExceptionIndex

pytestmark = pytest.mark.unit


def _build_exception(parent_id, when, kind=ExceptionType.DELETED, modified_id=None, exc_id=None):
    return EventException(
        id=exc_id or f"{parent_id}-{when:%Y%m%d%H%M}",
        parent_event_id=parent_id,
        exception_date=when,
        type=kind,
        modified_event_id=modified_id,
        created_at=datetime(2024, 3, 1),
    )


def test_build_when_mixed_exceptions_then_grouped_by_parent_and_type():
    index = ExceptionIndex.build(
        [
            _build_exception("a", datetime(2024, 3, 11, 9, 0)),
            _build_exception("a", datetime(2024, 3, 18, 9, 0), ExceptionType.MODIFIED, "m1"),
            _build_exception("b", datetime(2024, 3, 12, 14, 0)),
        ]
    )

    assert len(index) == 2
    assert index.entry_for("a").deleted == {"2024-03-11"}
    assert index.entry_for("a").modified == {"2024-03-18"}
    assert index.entry_for("b").deleted == {"2024-03-12"}
    assert "a" in index
    assert "c" not in index


def test_entry_for_when_series_has_no_exceptions_then_empty():
    entry = ExceptionIndex.build([]).entry_for("missing")

    assert not entry.deleted
    assert not entry.modified
    assert entry.is_shadowed("2024-03-11") is False


def test_is_shadowed_when_same_day_different_time_then_true():
    index = ExceptionIndex.build([_build_exception("a", datetime(2024, 3, 11, 0, 5))])

    # Occurrence at 09:00 and exception recorded at 00:05 collapse to the same day
    assert index.entry_for("a").is_shadowed("2024-03-11")
    assert not index.entry_for("a").is_shadowed("2024-03-12")


def test_build_when_exceptions_iterable_is_generator_then_consumed_once():
    exceptions = (_build_exception("a", datetime(2024, 3, d)) for d in (4, 11, 18))
    index = ExceptionIndex.build(exceptions)

    assert index.entry_for("a").deleted == {"2024-03-04", "2024-03-11", "2024-03-18"}
