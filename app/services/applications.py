"""Bazaar application lifecycle: apply, approve, reject, cancel and views.

States: ``pending -> approved``, ``pending -> rejected`` and
``pending -> (deleted)`` by the vendor while unpaid. Each transition is a
conditional statement in :class:`ApplicationRepository`; when it matches no
row the current state decides between idempotent success, ``ConflictError``
and ``InvalidStateError``.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.core.pagination import Page, PaginationParams
from app.core.security import Principal
from app.domain.application import (
    BOOTH_SIZES,
    MAX_ATTENDEES,
    PAYMENT_PENDING,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    BazaarApplication,
)
from app.domain.event import VENDOR_EVENT_TYPES, Event
from app.domain.mixins import utcnow
from app.repositories.application import ApplicationRepository
from app.repositories.audit import AuditRepository
from app.repositories.event import EventRepository
from app.repositories.vendor import VendorRepository
from app.services.booth_window import (
    BoothWindow,
    ensure_within_event,
    resolve_booth_window,
)
from app.services.fees import participation_fee
from app.services.notifications import (
    NOTIFY_APPROVED,
    NOTIFY_REJECTED,
    NotificationDispatcher,
)

logger = logging.getLogger(__name__)

ENTITY = "bazaar_application"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Columns a listing may be sorted by
SORTABLE_COLUMNS = {"application_date", "decision_date", "status", "created_at", "updated_at"}


def validate_attendee_identities(attendees: Sequence[dict[str, Any]]) -> None:
    """Count bounds, non-empty names, well-formed and unique emails."""
    if len(attendees) < 1:
        raise ValidationError("At least 1 attendee is required")
    if len(attendees) > MAX_ATTENDEES:
        raise ValidationError(f"Maximum {MAX_ATTENDEES} attendees allowed")

    seen: set[str] = set()
    for index, attendee in enumerate(attendees):
        name = (attendee.get("name") or "").strip()
        email = (attendee.get("email") or "").strip()
        if not name:
            raise ValidationError(f"Attendee at index {index} is missing a name")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(f"Invalid attendee email at index {index}: {email!r}")
        normalized = email.lower()
        if normalized in seen:
            raise ValidationError("Duplicate attendee email addresses are not allowed")
        seen.add(normalized)


class ApplicationService:
    def __init__(self, session: AsyncSession, notifier: NotificationDispatcher):
        self._repo = ApplicationRepository(session)
        self._events = EventRepository(session)
        self._vendors = VendorRepository(session)
        self._audit = AuditRepository(session)
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, application_id: str, event_id: str | None = None) -> BazaarApplication:
        application = await self._repo.get_by_id(application_id)
        if not application or (event_id is not None and application.event_id != event_id):
            raise NotFoundError("Application", application_id)
        return application

    async def _get_event(self, event_id: str) -> Event:
        event = await self._events.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    async def _vendor_email(self, vendor_id: str) -> str | None:
        vendor = await self._vendors.get_by_id(vendor_id)
        return vendor.email if vendor else None

    @staticmethod
    def _approval_values(
        application: BazaarApplication, event: Event | None, booth_location: str | None
    ) -> dict[str, Any]:
        now = utcnow()
        values: dict[str, Any] = {
            "status": STATUS_APPROVED,
            "decision_date": now,
            "booth_location": booth_location,
        }
        # A vendor who already paid keeps that payment record
        if not application.is_paid:
            window = BoothWindow(
                start=application.booth_start_time,
                end=application.booth_end_time,
                duration_weeks=application.booth_duration_weeks,
            )
            values.update(
                payment_amount=participation_fee(
                    event.location if event else None, application.booth_size, window
                ),
                payment_currency=settings.bazaar_currency,
                payment_status=PAYMENT_PENDING,
                payment_due_date=now + timedelta(days=settings.payment_due_days),
            )
        return values

    def _require_moderator(self, principal: Principal) -> None:
        if not principal.can_moderate_applications:
            raise ForbiddenError("Only the events office can review applications")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, principal: Principal, application_id: str) -> BazaarApplication:
        application = await self._load(application_id)
        if application.vendor_id != principal.id and not principal.can_moderate_applications:
            raise ForbiddenError("You do not have access to this application")
        return application

    async def get_for_event(self, principal: Principal, event_id: str) -> BazaarApplication:
        """The requesting vendor's application to *event_id*."""
        application = await self._repo.get_for_vendor_event(principal.id, event_id)
        if not application:
            raise NotFoundError("Application for event", event_id)
        return application

    async def list_for_vendor(
        self, principal: Principal, pagination: PaginationParams
    ) -> Page[BazaarApplication]:
        return await self._repo.list(
            pagination,
            order_by=pagination.sort_column(SORTABLE_COLUMNS, "application_date"),
            filters={"vendor_id": principal.id},
        )

    async def list_for_event(
        self,
        principal: Principal,
        event_id: str,
        pagination: PaginationParams,
        status: str | None = None,
    ) -> Page[BazaarApplication]:
        self._require_moderator(principal)
        await self._get_event(event_id)
        return await self._repo.list(
            pagination,
            order_by=pagination.sort_column(SORTABLE_COLUMNS, "application_date"),
            filters={"event_id": event_id, "status": status},
        )

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    async def apply(
        self,
        principal: Principal,
        event_id: str,
        attendees: Sequence[dict[str, Any]],
        booth_size: str,
        booth_start: datetime | None = None,
        booth_end: datetime | None = None,
        duration_weeks: float | None = None,
    ) -> BazaarApplication:
        if not principal.is_vendor:
            raise ForbiddenError("Only vendors can apply to events")

        vendor = await self._vendors.get_by_id(principal.id)
        if not vendor:
            raise NotFoundError("Vendor", principal.id)

        event = await self._get_event(event_id)
        if event.event_type not in VENDOR_EVENT_TYPES:
            raise ValidationError("Vendors can only apply to bazaar or booth events")

        validate_attendee_identities(attendees)
        if booth_size not in BOOTH_SIZES:
            raise ValidationError(f"boothSize must be one of {', '.join(BOOTH_SIZES)}")

        window = resolve_booth_window(booth_start, booth_end, duration_weeks)
        ensure_within_event(window, event.start_date, event.end_date)

        if await self._repo.get_for_vendor_event(principal.id, event_id):
            raise ConflictError("You have already applied to this event")

        try:
            application = await self._repo.create(
                vendor_id=principal.id,
                event_id=event_id,
                status=STATUS_PENDING,
                application_date=utcnow(),
                attendees=[
                    {
                        "name": a["name"].strip(),
                        "email": a["email"].strip(),
                        "idDocumentPath": "",
                    }
                    for a in attendees
                ],
                booth_size=booth_size,
                booth_start_time=window.start,
                booth_end_time=window.end,
                booth_duration_weeks=window.duration_weeks,
                qr_codes=[],
            )
        except IntegrityError as exc:
            # A concurrent request inserted the same (vendor, event) first
            raise ConflictError("You have already applied to this event") from exc

        await self._audit.record(
            principal,
            "application.create",
            ENTITY,
            application.id,
            new_value={"eventId": event_id, "status": STATUS_PENDING},
        )
        logger.info("Vendor %s applied to event %s (%s)", principal.id, event_id, application.id)
        return application

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def approve(
        self,
        principal: Principal,
        application_id: str,
        booth_location: str | None = None,
        *,
        event_id: str | None = None,
    ) -> BazaarApplication:
        self._require_moderator(principal)
        application = await self._load(application_id, event_id)
        event = await self._events.get_by_id(application.event_id)

        # A payment may land between the read and the UPDATE; the UPDATE is
        # scoped by the payment state it was computed from, so re-read once.
        for _attempt in range(2):
            if application.status != STATUS_PENDING:
                raise InvalidStateError(
                    f"Only pending applications can be approved (status is {application.status})"
                )
            values = self._approval_values(application, event, booth_location)
            if await self._repo.transition_status(
                application_id,
                STATUS_PENDING,
                expect_paid=application.is_paid,
                **values,
            ):
                break
            application = await self._load(application_id)
        else:
            raise ConflictError("Application changed while it was being approved, please retry")

        await self._audit.record(
            principal,
            "application.approve",
            ENTITY,
            application_id,
            old_value={"status": STATUS_PENDING},
            new_value={
                "status": STATUS_APPROVED,
                "boothLocation": booth_location,
                "paymentAmount": str(values.get("payment_amount", application.payment_amount)),
            },
        )
        approved = await self._load(application_id)
        await self._emit(NOTIFY_APPROVED, approved, {"boothLocation": booth_location})
        return approved

    async def reject(
        self,
        principal: Principal,
        application_id: str,
        reason: str | None = None,
        *,
        event_id: str | None = None,
    ) -> BazaarApplication:
        self._require_moderator(principal)
        application = await self._load(application_id, event_id)
        if application.status != STATUS_PENDING:
            raise InvalidStateError(
                f"Only pending applications can be rejected (status is {application.status})"
            )

        reason = (reason or "").strip() or None
        if not await self._repo.transition_status(
            application_id,
            STATUS_PENDING,
            status=STATUS_REJECTED,
            decision_date=utcnow(),
            rejection_reason=reason,
        ):
            current = await self._load(application_id)
            raise InvalidStateError(
                f"Application was already {current.status} by another request"
            )

        await self._audit.record(
            principal,
            "application.reject",
            ENTITY,
            application_id,
            old_value={"status": STATUS_PENDING},
            new_value={"status": STATUS_REJECTED, "reason": reason},
        )
        rejected = await self._load(application_id)
        await self._emit(NOTIFY_REJECTED, rejected, {"reason": reason})
        return rejected

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    async def cancel(self, principal: Principal, application_id: str) -> None:
        application = await self._load(application_id)
        if application.vendor_id != principal.id:
            raise ForbiddenError("You can only cancel your own applications")
        if application.status != STATUS_PENDING or application.is_paid:
            raise InvalidStateError(
                "Only pending, unpaid applications can be cancelled"
            )

        if not await self._repo.delete_if_cancellable(application_id, principal.id):
            current = await self._repo.get_by_id(application_id)
            if current is None:
                logger.info("Application %s was already cancelled", application_id)
                return
            raise InvalidStateError(
                "The application changed while cancelling and can no longer be cancelled"
            )

        await self._audit.record(
            principal,
            "application.cancel",
            ENTITY,
            application_id,
            old_value={"status": STATUS_PENDING, "eventId": application.event_id},
        )
        logger.info("Application %s cancelled by vendor %s", application_id, principal.id)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _emit(
        self, kind: str, application: BazaarApplication, extra: dict[str, Any]
    ) -> None:
        email = await self._vendor_email(application.vendor_id)
        if not email:
            logger.warning("No vendor email for application %s; skipping %s notice", application.id, kind)
            return
        payload = {"applicationId": application.id, **extra}
        if application.payment_amount is not None:
            payload["paymentAmount"] = str(Decimal(application.payment_amount))
        self._notifier.notify(kind, email, application.event_id, payload)
