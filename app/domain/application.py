"""SQLAlchemy ORM model for vendor bazaar applications.

Attendees and visitor QR codes live in JSON columns on the application row so
that each list is replaced by one single-row UPDATE; every lifecycle and
payment transition is likewise a conditional UPDATE/DELETE on this one row.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.domain.mixins import TimestampMixin, as_utc, utcnow

# Application status
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

# Payment status (forward-only: pending -> paid, pending -> overdue -> paid)
PAYMENT_PENDING = "pending"
PAYMENT_OVERDUE = "overdue"
PAYMENT_PAID = "paid"

BOOTH_SIZE_SMALL = "2x2"
BOOTH_SIZE_LARGE = "4x4"
BOOTH_SIZES = (BOOTH_SIZE_SMALL, BOOTH_SIZE_LARGE)

MAX_ATTENDEES = 5


class BazaarApplication(Base, TimestampMixin):
    __tablename__ = "bazaar_applications"
    __table_args__ = (
        UniqueConstraint("vendor_id", "event_id", name="uq_application_vendor_event"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vendor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Plain reference: event details are looked up by id, never embedded
    event_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # "pending" | "approved" | "rejected"
    status: Mapped[str] = mapped_column(
        String(20), default=STATUS_PENDING, nullable=False, index=True
    )
    application_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    decision_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # [{"name": ..., "email": ..., "idDocumentPath": ...}, ...]
    attendees: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    # Booth
    booth_size: Mapped[str] = mapped_column(String(10), nullable=False)
    booth_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    booth_start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    booth_end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    booth_duration_weeks: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Payment (all NULL until the events office approves or the vendor pays)
    payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    payment_currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    payment_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    payment_due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    receipt_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    # Gateway payment-intent id
    transaction_reference: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, index=True
    )

    # [{"visitorEmail": ..., "qrCodeUrl": ..., "issuedAt": ..., "token": ...}, ...]
    qr_codes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    vendor: Mapped["Vendor"] = relationship(back_populates="applications", lazy="noload")

    @property
    def has_payment(self) -> bool:
        return self.payment_status is not None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_PAID

    @property
    def is_complete(self) -> bool:
        """Every attendee has an uploaded ID document."""
        return bool(self.attendees) and all(
            (a.get("idDocumentPath") or "").strip() for a in self.attendees
        )

    def display_payment_status(self, now: datetime | None = None) -> str | None:
        """Stored status, except a pending payment past its due date shows as overdue."""
        if self.payment_status != PAYMENT_PENDING:
            return self.payment_status
        due = as_utc(self.payment_due_date)
        if due is not None and due < (now or utcnow()):
            return PAYMENT_OVERDUE
        return PAYMENT_PENDING
