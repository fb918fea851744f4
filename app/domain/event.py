"""SQLAlchemy ORM model for events (read-only here; managed by the events screens)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.domain.mixins import TimestampMixin

EVENT_TYPE_BAZAAR = "bazaar"
EVENT_TYPE_BOOTH = "booth"

# Event types a vendor may apply to
VENDOR_EVENT_TYPES = (EVENT_TYPE_BAZAAR, EVENT_TYPE_BOOTH)

LOCATION_GUC_CAIRO = "GUC Cairo"
LOCATION_GUC_BERLIN = "GUC Berlin"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # "bazaar" | "booth" | "workshop" | "trip" | "conference" | ...
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
