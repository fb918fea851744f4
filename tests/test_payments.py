"""Payment intents, server-side finalization, overdue sweep and webhooks."""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    PaymentDeclinedError,
    ValidationError,
)
from app.domain.mixins import utcnow
from app.repositories.application import ApplicationRepository
from app.services.applications import ApplicationService
from app.services.gateway import sign_webhook_payload
from app.services.payments import PaymentService
from helpers import WEBHOOK_SECRET, RecordingNotifier, attendee_dicts


@pytest.fixture
def payments(session, gateway, notifier):
    return PaymentService(session, gateway, notifier)


@pytest.fixture
async def application(session, notifier, vendor_principal, bazaar_event):
    return await ApplicationService(session, notifier).apply(
        vendor_principal, bazaar_event.id, attendee_dicts(3), "2x2"
    )


async def succeeded_intent(payments, gateway, principal, application_id):
    result = await payments.create_intent(principal, application_id)
    gateway.succeed(result.payment_intent_id)
    return result.payment_intent_id


class TestCreateIntent:
    async def test_default_fee_without_payment_record(
        self, payments, gateway, application, vendor_principal
    ):
        result = await payments.create_intent(vendor_principal, application.id)
        assert result.amount == Decimal(1000)
        assert result.currency == "EGP"
        assert result.display_amount == "EGP 1,000.00"
        assert result.client_secret.endswith("_secret")

        amount, currency, metadata = gateway.created[0]
        assert (amount, currency) == (100000, "EGP")
        assert metadata["application_id"] == application.id

    async def test_uses_approved_fee(
        self, session, notifier, payments, gateway, application, vendor_principal, office_principal
    ):
        await ApplicationService(session, notifier).approve(office_principal, application.id)
        result = await payments.create_intent(vendor_principal, application.id)
        assert result.amount == Decimal(2500)
        assert gateway.created[0][0] == 250000

    async def test_does_not_touch_payment_status(
        self, session, payments, application, vendor_principal
    ):
        await payments.create_intent(vendor_principal, application.id)
        current = await ApplicationRepository(session).get_by_id(application.id)
        assert current.payment_status is None

    async def test_rejected_application(
        self, session, notifier, payments, application, vendor_principal, office_principal
    ):
        await ApplicationService(session, notifier).reject(office_principal, application.id)
        with pytest.raises(InvalidStateError):
            await payments.create_intent(vendor_principal, application.id)

    async def test_other_vendor(self, payments, application, other_vendor_principal):
        with pytest.raises(ForbiddenError):
            await payments.create_intent(other_vendor_principal, application.id)


class TestFinalize:
    async def test_marks_paid_issues_passes_and_notifies(
        self, payments, gateway, notifier, application, vendor_principal
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        paid = await payments.finalize(vendor_principal, application.id, intent_id)

        assert paid.payment_status == "paid"
        assert paid.transaction_reference == intent_id
        assert paid.receipt_number.startswith("BZR-")
        assert paid.paid_at is not None
        assert len(paid.qr_codes) == len(paid.attendees) == 3
        assert notifier.kinds() == ["paid"]

    async def test_double_finalize_is_idempotent(
        self, session, payments, gateway, notifier, application, vendor_principal
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        first = await payments.finalize(vendor_principal, application.id, intent_id)
        passes = list(first.qr_codes)
        receipt = first.receipt_number

        second = await payments.finalize(vendor_principal, application.id, intent_id)

        assert second.payment_status == "paid"
        assert second.receipt_number == receipt
        assert second.qr_codes == passes
        assert len(second.qr_codes) == 3
        assert gateway.retrieved == [intent_id]
        assert notifier.kinds() == ["paid"]

    async def test_second_intent_after_payment_changes_nothing(
        self, payments, gateway, notifier, application, vendor_principal
    ):
        first_intent = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        second_intent = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        first = await payments.finalize(vendor_principal, application.id, first_intent)
        receipt = first.receipt_number

        again = await payments.finalize(vendor_principal, application.id, second_intent)

        assert again.payment_status == "paid"
        assert again.receipt_number == receipt
        assert again.transaction_reference == first_intent
        assert len(again.qr_codes) == len(again.attendees)
        assert notifier.kinds() == ["paid"]

    async def test_concurrent_finalize_loser_succeeds_without_reissue(
        self, session_factory, gateway, vendor_principal, application, session
    ):
        await session.commit()
        setup = PaymentService(session, gateway, RecordingNotifier())
        intent_id = await succeeded_intent(setup, gateway, vendor_principal, application.id)

        async def other_request_pays_first(_):
            gateway.on_retrieve = None
            async with session_factory() as other:
                await PaymentService(other, gateway, RecordingNotifier()).finalize(
                    vendor_principal, application.id, intent_id
                )
                await other.commit()

        gateway.on_retrieve = other_request_pays_first
        async with session_factory() as mine:
            result = await PaymentService(mine, gateway, RecordingNotifier()).finalize(
                vendor_principal, application.id, intent_id
            )
            assert result.payment_status == "paid"
            assert len(result.qr_codes) == 3

    async def test_declined_card(self, payments, gateway, application, vendor_principal):
        result = await payments.create_intent(vendor_principal, application.id)
        gateway.set_status(
            result.payment_intent_id, "requires_payment_method", last_error="Your card was declined."
        )
        with pytest.raises(PaymentDeclinedError, match="card was declined"):
            await payments.finalize(vendor_principal, application.id, result.payment_intent_id)

    async def test_unfinished_intent(self, payments, application, vendor_principal):
        result = await payments.create_intent(vendor_principal, application.id)
        with pytest.raises(InvalidStateError, match="requires_confirmation"):
            await payments.finalize(vendor_principal, application.id, result.payment_intent_id)

    async def test_intent_of_another_application(
        self, session, notifier, payments, gateway, application, vendor_principal,
        other_vendor_principal, bazaar_event,
    ):
        other = await ApplicationService(session, notifier).apply(
            other_vendor_principal, bazaar_event.id, attendee_dicts(1), "2x2"
        )
        foreign = await succeeded_intent(payments, gateway, other_vendor_principal, other.id)
        with pytest.raises(ValidationError, match="does not belong"):
            await payments.finalize(vendor_principal, application.id, foreign)

    async def test_amount_must_cover_fee(self, payments, gateway, application, vendor_principal):
        result = await payments.create_intent(vendor_principal, application.id)
        gateway.set_status(result.payment_intent_id, "succeeded", amount=100)
        with pytest.raises(ValidationError, match="does not cover"):
            await payments.finalize(vendor_principal, application.id, result.payment_intent_id)

    async def test_currency_must_match(self, payments, gateway, application, vendor_principal):
        result = await payments.create_intent(vendor_principal, application.id)
        gateway.set_status(result.payment_intent_id, "succeeded", currency="USD")
        with pytest.raises(ValidationError, match="currency"):
            await payments.finalize(vendor_principal, application.id, result.payment_intent_id)

    async def test_unknown_intent(self, payments, application, vendor_principal):
        with pytest.raises(ValidationError):
            await payments.finalize(vendor_principal, application.id, "pi_forged")


class TestCancelVersusFinalize:
    async def test_finalize_after_cancel_conflicts(
        self, session, notifier, payments, gateway, application, vendor_principal
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        await ApplicationService(session, notifier).cancel(vendor_principal, application.id)
        with pytest.raises(ConflictError, match="cancelled"):
            await payments.finalize(vendor_principal, application.id, intent_id)

    async def test_cancel_after_finalize_is_invalid(
        self, session, notifier, payments, gateway, application, vendor_principal
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        await payments.finalize(vendor_principal, application.id, intent_id)
        with pytest.raises(InvalidStateError):
            await ApplicationService(session, notifier).cancel(vendor_principal, application.id)
        assert (await ApplicationRepository(session).get_by_id(application.id)).is_paid

    async def test_cancel_landing_mid_finalize_leaves_one_effect(
        self, session_factory, session, gateway, application, vendor_principal
    ):
        await session.commit()
        setup = PaymentService(session, gateway, RecordingNotifier())
        intent_id = await succeeded_intent(setup, gateway, vendor_principal, application.id)

        async def vendor_cancels_meanwhile(_):
            gateway.on_retrieve = None
            async with session_factory() as other:
                await ApplicationService(other, RecordingNotifier()).cancel(
                    vendor_principal, application.id
                )
                await other.commit()

        gateway.on_retrieve = vendor_cancels_meanwhile
        notifier = RecordingNotifier()
        async with session_factory() as mine:
            with pytest.raises(ConflictError):
                await PaymentService(mine, gateway, notifier).finalize(
                    vendor_principal, application.id, intent_id
                )
            await mine.rollback()

        async with session_factory() as check:
            assert await ApplicationRepository(check).get_by_id(application.id) is None
        assert notifier.sent == []


class TestApproveVersusFinalize:
    async def test_payment_landing_mid_approve_stays_paid(
        self, session_factory, session, gateway, application, vendor_principal, office_principal
    ):
        await session.commit()
        setup = PaymentService(session, gateway, RecordingNotifier())
        intent_id = await succeeded_intent(setup, gateway, vendor_principal, application.id)
        await session.commit()

        async with session_factory() as mine:
            service = ApplicationService(mine, RecordingNotifier())
            lookup = service._events.get_by_id

            async def vendor_pays_meanwhile(event_id):
                service._events.get_by_id = lookup
                async with session_factory() as other:
                    await PaymentService(other, gateway, RecordingNotifier()).finalize(
                        vendor_principal, application.id, intent_id
                    )
                    await other.commit()
                return await lookup(event_id)

            service._events.get_by_id = vendor_pays_meanwhile
            approved = await service.approve(office_principal, application.id)
            await mine.commit()

            assert approved.status == "approved"
            assert approved.payment_status == "paid"
            assert approved.payment_amount == Decimal(1000)

        async with session_factory() as check:
            current = await ApplicationRepository(check).get_by_id(application.id)
            assert current.status == "approved"
            assert current.payment_status == "paid"
            assert current.transaction_reference == intent_id
            assert len(current.qr_codes) == 3


class TestOverdueSweep:
    async def test_moves_past_due_pending_payments(
        self, session, payments, application, office_principal
    ):
        repo = ApplicationRepository(session)
        await repo.update(
            application.id,
            payment_status="pending",
            payment_amount=Decimal(2500),
            payment_currency="EGP",
            payment_due_date=utcnow() - timedelta(days=1),
        )
        assert await payments.mark_overdue(office_principal) == 1
        assert (await repo.get_by_id(application.id)).payment_status == "overdue"
        assert await payments.mark_overdue(office_principal) == 0

    async def test_overdue_payment_can_still_be_paid(
        self, session, payments, gateway, application, vendor_principal
    ):
        await ApplicationRepository(session).update(
            application.id,
            payment_status="overdue",
            payment_amount=Decimal(1000),
            payment_currency="EGP",
            payment_due_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        paid = await payments.finalize(vendor_principal, application.id, intent_id)
        assert paid.payment_status == "paid"

    async def test_requires_events_office(self, payments, vendor_principal):
        with pytest.raises(ForbiddenError):
            await payments.mark_overdue(vendor_principal)


class TestWebhook:
    def _event(self, intent_id, application_id, event_type="payment_intent.succeeded"):
        return json.dumps(
            {
                "id": "evt_1",
                "type": event_type,
                "data": {"object": {"id": intent_id, "metadata": {"application_id": application_id}}},
            }
        ).encode()

    async def test_succeeded_event_finalizes(
        self, payments, gateway, application, vendor_principal, notifier
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        payload = self._event(intent_id, application.id)
        signature = sign_webhook_payload(payload, WEBHOOK_SECRET)

        assert await payments.handle_gateway_event(payload, signature) == "processed"
        # Gateway redelivery
        assert await payments.handle_gateway_event(payload, signature) == "processed"
        assert notifier.kinds() == ["paid"]

    async def test_other_event_types_ignored(self, payments, application):
        payload = self._event("pi_x", application.id, "payment_intent.created")
        signature = sign_webhook_payload(payload, WEBHOOK_SECRET)
        assert await payments.handle_gateway_event(payload, signature) == "ignored"

    async def test_event_for_cancelled_application_is_skipped(
        self, session, notifier, payments, gateway, application, vendor_principal
    ):
        intent_id = await succeeded_intent(payments, gateway, vendor_principal, application.id)
        await ApplicationService(session, notifier).cancel(vendor_principal, application.id)
        payload = self._event(intent_id, application.id)
        signature = sign_webhook_payload(payload, WEBHOOK_SECRET)
        assert await payments.handle_gateway_event(payload, signature) == "skipped"

    async def test_bad_signature(self, payments, application):
        payload = self._event("pi_x", application.id)
        with pytest.raises(ValidationError, match="signature"):
            await payments.handle_gateway_event(payload, sign_webhook_payload(payload, "wrong"))

    async def test_underpaid_intent_is_skipped(
        self, payments, gateway, application, vendor_principal, notifier, caplog
    ):
        result = await payments.create_intent(vendor_principal, application.id)
        gateway.set_status(result.payment_intent_id, "succeeded", amount=100)
        payload = self._event(result.payment_intent_id, application.id)
        signature = sign_webhook_payload(payload, WEBHOOK_SECRET)

        with caplog.at_level("WARNING", logger="app.services.payments"):
            assert await payments.handle_gateway_event(payload, signature) == "skipped"
        assert "not applied" in caplog.text
        assert not (await payments._repo.get_by_id(application.id)).is_paid
        assert notifier.sent == []

    async def test_declined_intent_is_skipped(self, payments, gateway, application, vendor_principal):
        result = await payments.create_intent(vendor_principal, application.id)
        gateway.set_status(
            result.payment_intent_id, "requires_payment_method", last_error="Card declined"
        )
        payload = self._event(result.payment_intent_id, application.id)
        signature = sign_webhook_payload(payload, WEBHOOK_SECRET)
        assert await payments.handle_gateway_event(payload, signature) == "skipped"
