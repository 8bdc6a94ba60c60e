"""Tests for recurrence step arithmetic."""

import logging
from datetime import datetime

import pytest

from recurcal.calendar.models import RecurrencePattern
from recurcal.calendar.stepper import (
    first_index_at_or_after,
    is_known_pattern,
    next_occurrence,
    nth_occurrence,
    step_for,
)

pytestmark = pytest.mark.unit


class TestNextOccurrence:
    """Single steps for each pattern."""

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("daily", datetime(2024, 3, 5, 9, 0)),
            ("weekly", datetime(2024, 3, 11, 9, 0)),
            ("monthly", datetime(2024, 4, 4, 9, 0)),
            ("yearly", datetime(2025, 3, 4, 9, 0)),
        ],
    )
    def test_next_occurrence_when_known_pattern_then_steps_calendar_unit(self, pattern, expected):
        assert next_occurrence(datetime(2024, 3, 4, 9, 0), pattern) == expected

    def test_next_occurrence_when_enum_pattern_then_same_as_text(self):
        start = datetime(2024, 3, 4, 9, 0)
        assert next_occurrence(start, RecurrencePattern.WEEKLY) == next_occurrence(start, "weekly")

    def test_next_occurrence_when_pattern_has_case_and_spaces_then_normalized(self):
        assert next_occurrence(datetime(2024, 3, 4), " Daily ") == datetime(2024, 3, 5)

    def test_next_occurrence_when_jan_31_monthly_then_clamps_to_feb_29_in_leap_year(self):
        assert next_occurrence(datetime(2024, 1, 31, 10, 0), "monthly") == datetime(2024, 2, 29, 10, 0)

    def test_next_occurrence_when_jan_31_monthly_then_clamps_to_feb_28_otherwise(self):
        assert next_occurrence(datetime(2023, 1, 31), "monthly") == datetime(2023, 2, 28)

    def test_next_occurrence_when_feb_29_yearly_then_feb_28(self):
        assert next_occurrence(datetime(2024, 2, 29), "yearly") == datetime(2025, 2, 28)

    def test_next_occurrence_when_weekly_crosses_month_then_seven_days(self):
        assert next_occurrence(datetime(2024, 1, 29, 9, 0), "weekly") == datetime(2024, 2, 5, 9, 0)


class TestUnknownPattern:
    """Unrecognized patterns step weekly with a warning."""

    def test_step_for_when_unknown_pattern_then_weekly_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="recurcal.calendar.stepper"):
            result = next_occurrence(datetime(2024, 3, 4), "fortnightly")

        assert result == datetime(2024, 3, 11)
        assert "fortnightly" in caplog.text

    @pytest.mark.parametrize("pattern", [None, "", "hourly"])
    def test_is_known_pattern_when_unsupported_then_false(self, pattern):
        assert is_known_pattern(pattern) is False

    def test_is_known_pattern_when_supported_then_true(self):
        assert all(is_known_pattern(p.value) for p in RecurrencePattern)

    def test_step_for_when_none_then_weekly(self):
        assert step_for(None) == step_for("weekly")


class TestAnchoredSteps:
    """Occurrences computed from the series anchor."""

    def test_nth_occurrence_when_monthly_from_jan_31_then_no_drift(self):
        anchor = datetime(2024, 1, 31, 10, 0)
        dates = [nth_occurrence(anchor, "monthly", n) for n in range(4)]
        assert dates == [
            datetime(2024, 1, 31, 10, 0),
            datetime(2024, 2, 29, 10, 0),
            datetime(2024, 3, 31, 10, 0),
            datetime(2024, 4, 30, 10, 0),
        ]

    def test_nth_occurrence_when_yearly_from_feb_29_then_returns_to_leap_day(self):
        anchor = datetime(2024, 2, 29)
        assert nth_occurrence(anchor, "yearly", 1) == datetime(2025, 2, 28)
        assert nth_occurrence(anchor, "yearly", 4) == datetime(2028, 2, 29)

    def test_nth_occurrence_when_index_zero_then_anchor(self):
        anchor = datetime(2024, 3, 4, 9, 0)
        assert nth_occurrence(anchor, "daily", 0) == anchor

    def test_first_index_when_target_before_anchor_then_zero(self):
        anchor = datetime(2024, 3, 4, 9, 0)
        assert first_index_at_or_after(anchor, "weekly", datetime(2024, 1, 1)) == 0

    def test_first_index_when_target_between_occurrences_then_next_one(self):
        anchor = datetime(2024, 1, 1, 9, 0)
        index = first_index_at_or_after(anchor, "weekly", datetime(2024, 3, 1))
        assert index == 9
        assert nth_occurrence(anchor, "weekly", index) == datetime(2024, 3, 4, 9, 0)

    def test_first_index_when_target_is_occurrence_then_that_index(self):
        anchor = datetime(2024, 1, 1, 9, 0)
        assert first_index_at_or_after(anchor, "daily", datetime(2024, 1, 11, 9, 0)) == 10

    @pytest.mark.parametrize("pattern", ["daily", "weekly", "monthly", "yearly"])
    def test_first_index_when_far_target_then_smallest_index_at_or_after(self, pattern):
        anchor = datetime(2000, 1, 31, 9, 0)
        target = datetime(2040, 6, 15, 12, 0)
        index = first_index_at_or_after(anchor, pattern, target)

        assert nth_occurrence(anchor, pattern, index) >= target
        assert nth_occurrence(anchor, pattern, index - 1) < target
