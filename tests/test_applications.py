"""Application lifecycle: apply, approve, reject, cancel."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.core.pagination import PaginationParams
from app.domain.application import PAYMENT_PAID, PAYMENT_PENDING
from app.domain.event import Event
from app.repositories.application import ApplicationRepository
from app.repositories.audit import AuditRepository
from app.services.applications import ApplicationService
from helpers import attendee_dicts

BOOTH_START = datetime(2024, 1, 1, 9, tzinfo=timezone.utc)


def page(**overrides):
    params = dict(page=1, limit=20, sort=None, order="desc")
    params.update(overrides)
    return PaginationParams(**params)


@pytest.fixture
def service(session, notifier):
    return ApplicationService(session, notifier)


@pytest.fixture
async def application(service, vendor_principal, bazaar_event):
    return await service.apply(
        vendor_principal,
        bazaar_event.id,
        attendee_dicts(2),
        "2x2",
        booth_start=BOOTH_START,
        duration_weeks=2,
    )


class TestApply:
    async def test_creates_pending_application(self, application, vendor, bazaar_event):
        assert application.status == "pending"
        assert application.vendor_id == vendor.id
        assert application.event_id == bazaar_event.id
        assert application.payment_status is None
        assert application.qr_codes == []
        assert [a["idDocumentPath"] for a in application.attendees] == ["", ""]
        assert not application.is_complete

    async def test_booth_end_derived_from_weeks(self, application):
        assert application.booth_end_time.replace(tzinfo=timezone.utc) == datetime(
            2024, 1, 15, 9, tzinfo=timezone.utc
        )
        assert application.booth_duration_weeks == 2

    async def test_second_application_to_same_event_conflicts(
        self, service, application, vendor_principal, bazaar_event
    ):
        with pytest.raises(ConflictError, match="already applied"):
            await service.apply(vendor_principal, bazaar_event.id, attendee_dicts(1), "2x2")

    @pytest.mark.parametrize("count", [0, 6])
    async def test_attendee_count_bounds(self, service, vendor_principal, bazaar_event, count):
        with pytest.raises(ValidationError, match="attendee"):
            await service.apply(vendor_principal, bazaar_event.id, attendee_dicts(count), "2x2")

    async def test_duplicate_attendee_emails_rejected(self, service, vendor_principal, bazaar_event):
        attendees = [
            {"name": "A", "email": "same@example.com"},
            {"name": "B", "email": "SAME@example.com"},
        ]
        with pytest.raises(ValidationError, match="Duplicate"):
            await service.apply(vendor_principal, bazaar_event.id, attendees, "2x2")

    async def test_invalid_booth_size(self, service, vendor_principal, bazaar_event):
        with pytest.raises(ValidationError, match="boothSize"):
            await service.apply(vendor_principal, bazaar_event.id, attendee_dicts(1), "3x3")

    async def test_booth_outside_event_dates(self, service, vendor_principal, bazaar_event):
        with pytest.raises(ValidationError, match="within the event"):
            await service.apply(
                vendor_principal,
                bazaar_event.id,
                attendee_dicts(1),
                "2x2",
                booth_start=BOOTH_START,
                duration_weeks=52,
            )

    async def test_only_bazaar_or_booth_events(self, session, service, vendor_principal):
        trip = Event(name="Siwa trip", event_type="trip")
        session.add(trip)
        await session.flush()
        with pytest.raises(ValidationError, match="bazaar or booth"):
            await service.apply(vendor_principal, trip.id, attendee_dicts(1), "2x2")

    async def test_unknown_event(self, service, vendor_principal):
        with pytest.raises(NotFoundError):
            await service.apply(vendor_principal, "no-such-event", attendee_dicts(1), "2x2")

    async def test_non_vendor_cannot_apply(self, service, office_principal, bazaar_event):
        with pytest.raises(ForbiddenError):
            await service.apply(office_principal, bazaar_event.id, attendee_dicts(1), "2x2")


class TestApprove:
    async def test_creates_pending_payment(self, service, application, office_principal, notifier):
        approved = await service.approve(office_principal, application.id, booth_location="Hall B")
        assert approved.status == "approved"
        assert approved.booth_location == "Hall B"
        assert approved.decision_date is not None
        assert approved.payment_status == PAYMENT_PENDING
        assert approved.payment_currency == "EGP"
        # Week booking in Cairo, small booth
        assert Decimal(approved.payment_amount) == Decimal(2500)
        assert approved.payment_due_date is not None
        assert notifier.kinds() == ["approved"]
        assert notifier.sent[0][1] == "stall@example.com"

    async def test_requires_events_office(self, service, application, vendor_principal):
        with pytest.raises(ForbiddenError):
            await service.approve(vendor_principal, application.id)

    async def test_twice_is_invalid_state(self, service, application, office_principal):
        await service.approve(office_principal, application.id)
        with pytest.raises(InvalidStateError):
            await service.approve(office_principal, application.id)

    async def test_wrong_event_in_path_is_not_found(self, service, application, office_principal):
        with pytest.raises(NotFoundError):
            await service.approve(office_principal, application.id, event_id="other-event")

    async def test_keeps_existing_paid_record(self, session, service, application, office_principal):
        await ApplicationRepository(session).mark_paid(
            application.id, payment_amount=Decimal(1000), payment_currency="EGP"
        )
        approved = await service.approve(office_principal, application.id)
        assert approved.payment_status == PAYMENT_PAID
        assert Decimal(approved.payment_amount) == Decimal(1000)


class TestReject:
    async def test_stores_reason(self, service, application, office_principal, notifier):
        rejected = await service.reject(office_principal, application.id, reason="  Booth quota full ")
        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Booth quota full"
        assert notifier.kinds() == ["rejected"]

    async def test_reject_then_cancel_is_invalid_state(
        self, service, application, office_principal, vendor_principal
    ):
        await service.reject(office_principal, application.id)
        with pytest.raises(InvalidStateError):
            await service.cancel(vendor_principal, application.id)

    async def test_cannot_reject_approved(self, service, application, office_principal):
        await service.approve(office_principal, application.id)
        with pytest.raises(InvalidStateError):
            await service.reject(office_principal, application.id)


class TestCancel:
    async def test_pending_unpaid_application_is_deleted(
        self, session, service, application, vendor_principal
    ):
        await service.cancel(vendor_principal, application.id)
        assert await ApplicationRepository(session).get_by_id(application.id) is None
        assert await AuditRepository(session).has_action(application.id, "application.cancel")

    async def test_only_owner_may_cancel(self, service, application, other_vendor_principal):
        with pytest.raises(ForbiddenError):
            await service.cancel(other_vendor_principal, application.id)

    async def test_approved_cannot_be_cancelled(
        self, service, application, office_principal, vendor_principal
    ):
        await service.approve(office_principal, application.id)
        with pytest.raises(InvalidStateError):
            await service.cancel(vendor_principal, application.id)

    async def test_paid_pending_cannot_be_cancelled(
        self, session, service, application, vendor_principal
    ):
        await ApplicationRepository(session).mark_paid(
            application.id, payment_amount=Decimal(1000), payment_currency="EGP"
        )
        with pytest.raises(InvalidStateError):
            await service.cancel(vendor_principal, application.id)

    @pytest.mark.parametrize(
        "status,payment_status,cancellable",
        [
            ("pending", None, True),
            ("pending", "pending", True),
            ("pending", "overdue", True),
            ("pending", "paid", False),
            ("approved", None, False),
            ("approved", "pending", False),
            ("rejected", None, False),
        ],
    )
    async def test_cancel_predicate(
        self, session, application, vendor_principal, status, payment_status, cancellable
    ):
        repo = ApplicationRepository(session)
        await repo.update(application.id, status=status, payment_status=payment_status)
        assert await repo.delete_if_cancellable(application.id, vendor_principal.id) is cancellable


class TestViews:
    async def test_list_for_vendor_only_shows_own(
        self, session, notifier, service, application, other_vendor_principal, bazaar_event
    ):
        other = await service.apply(other_vendor_principal, bazaar_event.id, attendee_dicts(1), "4x4")
        listing = await service.list_for_vendor(other_vendor_principal, page())
        assert listing.total == 1
        assert [a.id for a in listing.items] == [other.id]

    async def test_list_for_event_filters_status(
        self, service, application, office_principal, bazaar_event, other_vendor_principal
    ):
        other = await service.apply(other_vendor_principal, bazaar_event.id, attendee_dicts(1), "4x4")
        await service.approve(office_principal, other.id)

        listing = await service.list_for_event(
            office_principal, bazaar_event.id, page(), status="pending"
        )
        assert listing.total == 1
        assert listing.items[0].id == application.id

    async def test_list_ignores_unknown_sort_column(
        self, service, application, office_principal, bazaar_event
    ):
        listing = await service.list_for_event(
            office_principal, bazaar_event.id, page(sort="vendorId; drop table", order="asc")
        )
        assert [a.id for a in listing.items] == [application.id]
        assert listing.pages == 1

    async def test_list_for_event_requires_office(self, service, vendor_principal, bazaar_event):
        with pytest.raises(ForbiddenError):
            await service.list_for_event(vendor_principal, bazaar_event.id, page())

    async def test_get_forbidden_for_other_vendor(
        self, service, application, other_vendor_principal
    ):
        with pytest.raises(ForbiddenError):
            await service.get(other_vendor_principal, application.id)

    async def test_overdue_displayed_past_due_date(self, session, application):
        repo = ApplicationRepository(session)
        await repo.update(
            application.id,
            payment_status=PAYMENT_PENDING,
            payment_amount=Decimal(2500),
            payment_currency="EGP",
            payment_due_date=datetime(2024, 1, 4, tzinfo=timezone.utc),
        )
        current = await repo.get_by_id(application.id)
        assert current.display_payment_status(datetime(2024, 1, 5, tzinfo=timezone.utc)) == "overdue"
        assert current.display_payment_status(datetime(2024, 1, 3, tzinfo=timezone.utc)) == "pending"
