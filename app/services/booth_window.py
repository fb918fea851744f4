"""Booth window resolution.

A booth window is the start/end range during which a vendor's booth is
active. The end is either given explicitly or derived from a duration in
weeks; when neither is usable the booth is "pending schedule", which is a
legitimate state and not an error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.exceptions import ValidationError
from app.domain.mixins import as_utc


@dataclass(frozen=True)
class BoothWindow:
    start: datetime | None
    end: datetime | None
    # Set only when the end was derived from a duration
    duration_weeks: float | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def hours(self) -> float:
        if not self.is_scheduled:
            return 0.0
        return max((self.end - self.start).total_seconds() / 3600, 0.0)


def _usable_weeks(duration_weeks: float | int | None) -> float | None:
    if duration_weeks is None or isinstance(duration_weeks, bool):
        return None
    try:
        weeks = float(duration_weeks)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(weeks) or weeks <= 0:
        return None
    return weeks


def resolve_booth_window(
    start: datetime | None,
    end: datetime | None = None,
    duration_weeks: float | int | None = None,
) -> BoothWindow:
    """Resolve the booth window.

    * ``end`` given -> used as is.
    * else a positive, finite ``duration_weeks`` -> ``end = start + 7 * weeks days``.
    * else the window is indeterminate (``is_scheduled`` is False).

    ``start < end`` is enforced whenever both resolve; an inverted window raises
    :class:`ValidationError` and is never corrected silently.
    """
    start = as_utc(start)
    end = as_utc(end)
    weeks = _usable_weeks(duration_weeks)

    if start is None:
        if end is not None:
            raise ValidationError("boothStartTime is required when boothEndTime is provided")
        return BoothWindow(start=None, end=None)

    if end is None and weeks is not None:
        end = start + timedelta(days=7 * weeks)
    else:
        weeks = None

    if end is not None and end <= start:
        raise ValidationError("boothEndTime must be after boothStartTime")

    return BoothWindow(start=start, end=end, duration_weeks=weeks)


def ensure_within_event(
    window: BoothWindow,
    event_start: datetime | None,
    event_end: datetime | None,
) -> None:
    """Reject a scheduled window that falls outside the event's own dates."""
    if not window.is_scheduled:
        return
    event_start = as_utc(event_start)
    event_end = as_utc(event_end)
    if event_start is not None and window.start < event_start:
        raise ValidationError("Booth times must be within the event start/end dates")
    if event_end is not None and window.end > event_end:
        raise ValidationError("Booth times must be within the event start/end dates")
