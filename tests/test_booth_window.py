"""Booth window resolution and event-bounds checks."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ValidationError
from app.services.booth_window import BoothWindow, ensure_within_event, resolve_booth_window

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestResolveBoothWindow:
    def test_duration_weeks_derives_end(self):
        window = resolve_booth_window(START, duration_weeks=2)
        assert window.end == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert window.duration_weeks == 2
        assert window.is_scheduled

    def test_fractional_weeks(self):
        window = resolve_booth_window(START, duration_weeks=0.5)
        assert window.end == START + timedelta(days=3.5)

    def test_explicit_end_wins_over_weeks(self):
        end = datetime(2024, 1, 3, tzinfo=timezone.utc)
        window = resolve_booth_window(START, end, duration_weeks=4)
        assert window.end == end
        assert window.duration_weeks is None

    @pytest.mark.parametrize("weeks", [None, 0, -1, float("nan"), float("inf"), "two", True])
    def test_unusable_weeks_leave_window_pending(self, weeks):
        window = resolve_booth_window(START, duration_weeks=weeks)
        assert window.end is None
        assert not window.is_scheduled
        assert window.hours == 0.0

    def test_no_start_is_pending_schedule(self):
        window = resolve_booth_window(None, duration_weeks=2)
        assert window == BoothWindow(start=None, end=None)

    def test_end_without_start_rejected(self):
        with pytest.raises(ValidationError, match="boothStartTime is required"):
            resolve_booth_window(None, START)

    @pytest.mark.parametrize("end", [START, START - timedelta(hours=1)])
    def test_end_not_after_start_rejected(self, end):
        with pytest.raises(ValidationError, match="must be after"):
            resolve_booth_window(START, end)

    def test_naive_datetimes_treated_as_utc(self):
        window = resolve_booth_window(datetime(2024, 1, 1), datetime(2024, 1, 1, 6))
        assert window.start.tzinfo is timezone.utc
        assert window.hours == 6


class TestEnsureWithinEvent:
    def test_window_inside_event(self):
        window = resolve_booth_window(START, duration_weeks=1)
        ensure_within_event(window, START, START + timedelta(days=30))

    def test_window_past_event_end(self):
        window = resolve_booth_window(START, duration_weeks=6)
        with pytest.raises(ValidationError, match="within the event"):
            ensure_within_event(window, START, START + timedelta(days=30))

    def test_window_before_event_start(self):
        window = resolve_booth_window(START, duration_weeks=1)
        with pytest.raises(ValidationError):
            ensure_within_event(window, START + timedelta(days=1), None)

    def test_unscheduled_window_not_checked(self):
        ensure_within_event(BoothWindow(start=START, end=None), START + timedelta(days=9), START)
