"""Bazaar participation fee, priced by campus and booth size or booked hours."""

from __future__ import annotations

from decimal import Decimal

from app.domain.application import BOOTH_SIZE_LARGE, BOOTH_SIZE_SMALL
from app.domain.event import LOCATION_GUC_BERLIN, LOCATION_GUC_CAIRO
from app.services.booth_window import BoothWindow

BAZAAR_FEE_TABLE: dict[str, dict[str, int]] = {
    LOCATION_GUC_CAIRO: {BOOTH_SIZE_SMALL: 2500, BOOTH_SIZE_LARGE: 3800},
    LOCATION_GUC_BERLIN: {BOOTH_SIZE_SMALL: 2200, BOOTH_SIZE_LARGE: 3400},
}
BOOTH_HOURLY_RATES: dict[str, int] = {
    LOCATION_GUC_CAIRO: 320,
    LOCATION_GUC_BERLIN: 280,
}
FALLBACK_FLAT_FEE = 3000
FALLBACK_HOURLY_RATE = 300


def flat_fee(location: str | None, booth_size: str) -> int:
    by_location = BAZAAR_FEE_TABLE.get(location or "")
    if not by_location:
        return FALLBACK_FLAT_FEE
    return by_location.get(booth_size, FALLBACK_FLAT_FEE)


def participation_fee(location: str | None, booth_size: str, window: BoothWindow) -> Decimal:
    """Larger of the flat booth fee and the hourly rate over an hourly booking.

    Week-long bookings (end derived from a duration) pay the flat fee.
    """
    base = flat_fee(location, booth_size)
    if not window.is_scheduled or window.duration_weeks is not None:
        return Decimal(base)
    rate = BOOTH_HOURLY_RATES.get(location or "", FALLBACK_HOURLY_RATE)
    hourly = max(round(window.hours * rate), rate)
    return Decimal(max(base, hourly))
