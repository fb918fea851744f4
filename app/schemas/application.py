"""Bazaar application Pydantic schemas (request DTOs and response models)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field

from app.domain.application import BazaarApplication
from app.domain.mixins import as_utc
from app.schemas.common import CamelModel
from app.services.currency import format_amount

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class AttendeeIn(CamelModel):
    name: str
    email: str


class ApplicationCreate(CamelModel):
    event_id: str
    attendees: list[AttendeeIn]
    booth_size: str
    booth_start_time: datetime | None = None
    booth_end_time: datetime | None = None
    booth_duration_weeks: float | None = None


class AttendeeEntry(CamelModel):
    """One attendee row of a multipart attendee update.

    ``file_field`` names the multipart part carrying a new ID document.
    """

    name: str = ""
    email: str = ""
    file_field: str | None = None


class ApproveRequest(CamelModel):
    booth_location: str | None = Field(default=None, max_length=255)


class RejectRequest(CamelModel):
    reason: str | None = Field(default=None, max_length=2000)


class PaymentConfirmRequest(CamelModel):
    payment_intent_id: str = Field(min_length=1, max_length=255)

# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AttendeeOut(CamelModel):
    name: str
    email: str
    id_document_path: str | None = None
    has_id_document: bool = False


class PaymentOut(CamelModel):
    amount: Decimal
    currency: str
    status: str
    display_amount: str
    due_date: datetime | None = None
    paid_at: datetime | None = None
    receipt_number: str | None = None
    transaction_reference: str | None = None


class QrCodeOut(CamelModel):
    visitor_email: str
    qr_code_url: str
    issued_at: datetime | None = None


class ApplicationOut(CamelModel):
    id: str
    vendor_id: str
    event_id: str
    status: str
    application_date: datetime
    decision_date: datetime | None = None
    rejection_reason: str | None = None
    attendees: list[AttendeeOut]
    is_complete: bool
    booth_size: str
    booth_location: str | None = None
    booth_start_time: datetime | None = None
    booth_end_time: datetime | None = None
    booth_duration_weeks: float | None = None
    booth_scheduled: bool
    payment: PaymentOut | None = None
    qr_codes: list[QrCodeOut]

    @classmethod
    def from_model(cls, app: BazaarApplication, now: datetime | None = None) -> "ApplicationOut":
        payment = None
        if app.has_payment:
            currency = app.payment_currency or ""
            amount = app.payment_amount if app.payment_amount is not None else Decimal(0)
            payment = PaymentOut(
                amount=amount,
                currency=currency,
                status=app.display_payment_status(now),
                display_amount=format_amount(amount, currency) if currency else str(amount),
                due_date=as_utc(app.payment_due_date),
                paid_at=as_utc(app.paid_at),
                receipt_number=app.receipt_number,
                transaction_reference=app.transaction_reference,
            )

        return cls(
            id=app.id,
            vendor_id=app.vendor_id,
            event_id=app.event_id,
            status=app.status,
            application_date=as_utc(app.application_date),
            decision_date=as_utc(app.decision_date),
            rejection_reason=app.rejection_reason,
            attendees=[_attendee_out(a) for a in app.attendees or []],
            is_complete=app.is_complete,
            booth_size=app.booth_size,
            booth_location=app.booth_location,
            booth_start_time=as_utc(app.booth_start_time),
            booth_end_time=as_utc(app.booth_end_time),
            booth_duration_weeks=app.booth_duration_weeks,
            booth_scheduled=app.booth_start_time is not None and app.booth_end_time is not None,
            payment=payment,
            qr_codes=[
                QrCodeOut(
                    visitor_email=q.get("visitorEmail", ""),
                    qr_code_url=q.get("qrCodeUrl", ""),
                    issued_at=q.get("issuedAt"),
                )
                for q in app.qr_codes or []
            ],
        )


def _attendee_out(raw: dict[str, Any]) -> AttendeeOut:
    path = raw.get("idDocumentPath") or None
    return AttendeeOut(
        name=raw.get("name", ""),
        email=raw.get("email", ""),
        id_document_path=path,
        has_id_document=bool(path),
    )


class PaymentIntentOut(CamelModel):
    client_secret: str
    payment_intent_id: str
    amount: Decimal
    currency: str
    display_amount: str


class PaymentConfirmOut(CamelModel):
    message: str
    application: ApplicationOut


class OverdueSweepOut(CamelModel):
    updated: int


class WebhookAck(CamelModel):
    received: bool = True
    outcome: str


class PassVerificationOut(CamelModel):
    valid: bool
    event_id: str
    visitor_email: str
