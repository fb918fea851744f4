"""Participation-fee payments through the card gateway.

The client only ever supplies a payment-intent id. Before anything is marked
paid the intent is re-read from the gateway and checked against the
application: it must carry the application's id in its metadata, have
succeeded, and cover the fee in the fee's currency.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PaymentDeclinedError,
    ValidationError,
)
from app.core.security import SYSTEM_PRINCIPAL, Principal
from app.domain.application import PAYMENT_PAID, STATUS_REJECTED, BazaarApplication
from app.domain.mixins import utcnow
from app.repositories.application import ApplicationRepository
from app.repositories.audit import AuditRepository
from app.repositories.vendor import VendorRepository
from app.services.applications import ENTITY
from app.services.currency import format_amount, to_minor_units
from app.services.gateway import GatewayIntent, PaymentGateway
from app.services.notifications import NOTIFY_PAID, NotificationDispatcher
from app.services.qr_codes import QrCodeIssuer

logger = logging.getLogger(__name__)

WEBHOOK_INTENT_SUCCEEDED = "payment_intent.succeeded"


@dataclass(frozen=True)
class PaymentIntentResult:
    client_secret: str
    payment_intent_id: str
    amount: Decimal
    currency: str

    @property
    def display_amount(self) -> str:
        return format_amount(self.amount, self.currency)


def generate_receipt_number(now: datetime | None = None) -> str:
    stamp = (now or utcnow()).strftime("%Y%m%d%H%M%S")
    return f"BZR-{stamp}-{secrets.token_hex(4).upper()}"


def amount_due(application: BazaarApplication) -> tuple[Decimal, str]:
    """Fee and currency of *application*; the default fee when no payment record exists."""
    if application.payment_amount is not None and application.payment_currency:
        return Decimal(application.payment_amount), application.payment_currency
    return Decimal(settings.bazaar_default_fee), settings.bazaar_currency


class PaymentService:
    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        notifier: NotificationDispatcher,
    ):
        self._repo = ApplicationRepository(session)
        self._vendors = VendorRepository(session)
        self._audit = AuditRepository(session)
        self._gateway = gateway
        self._notifier = notifier
        self._issuer = QrCodeIssuer(session)

    async def _load_owned(self, principal: Principal, application_id: str) -> BazaarApplication:
        application = await self._repo.get_by_id(application_id)
        if not application:
            if await self._audit.has_action(application_id, "application.cancel"):
                raise ConflictError("This application was cancelled")
            raise NotFoundError("Application", application_id)
        if not principal.is_system and application.vendor_id != principal.id:
            raise ForbiddenError("You can only pay for your own applications")
        return application

    # ------------------------------------------------------------------
    # Intent
    # ------------------------------------------------------------------

    async def create_intent(self, principal: Principal, application_id: str) -> PaymentIntentResult:
        application = await self._load_owned(principal, application_id)
        if application.status == STATUS_REJECTED:
            raise InvalidStateError("Rejected applications cannot be paid")
        if application.is_paid:
            raise InvalidStateError("This application has already been paid")

        amount, currency = amount_due(application)
        intent = await self._gateway.create_intent(
            to_minor_units(amount, currency),
            currency,
            {
                "application_id": application.id,
                "vendor_id": application.vendor_id,
                "event_id": application.event_id,
            },
        )
        if not intent.client_secret:
            logger.error("Gateway returned intent %s without a client secret", intent.id)
        return PaymentIntentResult(
            client_secret=intent.client_secret or "",
            payment_intent_id=intent.id,
            amount=amount,
            currency=currency,
        )

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def _check_intent(self, application: BazaarApplication, intent: GatewayIntent) -> None:
        if intent.metadata.get("application_id") != application.id:
            raise ValidationError("This payment does not belong to this application")
        if intent.declined:
            raise PaymentDeclinedError(intent.last_error or "The card payment was declined")
        if not intent.succeeded:
            raise InvalidStateError(
                f"The payment has not completed yet (gateway status: {intent.status})"
            )

        amount, currency = amount_due(application)
        if intent.currency != currency.upper():
            raise ValidationError(
                f"Payment currency {intent.currency} does not match the fee currency {currency}"
            )
        if intent.amount < to_minor_units(amount, currency):
            raise ValidationError(
                f"Payment amount does not cover the fee of {format_amount(amount, currency)}"
            )

    async def finalize(
        self, principal: Principal, application_id: str, payment_intent_id: str
    ) -> BazaarApplication:
        application = await self._load_owned(principal, application_id)
        if application.is_paid:
            logger.info("Application %s already paid; finalize is a no-op", application_id)
            return application
        if application.status == STATUS_REJECTED:
            raise InvalidStateError("Rejected applications cannot be paid")

        intent = await self._gateway.retrieve_intent(payment_intent_id)
        self._check_intent(application, intent)

        amount, currency = amount_due(application)
        now = utcnow()
        receipt = generate_receipt_number(now)
        won = await self._repo.mark_paid(
            application_id,
            payment_amount=amount,
            payment_currency=currency,
            paid_at=now,
            receipt_number=receipt,
            transaction_reference=intent.id,
        )
        if not won:
            current = await self._repo.get_by_id(application_id)
            if current is None:
                raise ConflictError("This application was cancelled before the payment was recorded")
            if current.is_paid:
                logger.info("Application %s was paid by a concurrent request", application_id)
                return current
            raise InvalidStateError(
                f"Payment cannot be recorded for a {current.status} application"
            )

        paid = await self._repo.get_by_id(application_id)
        await self._issuer.issue_for_application(paid)
        await self._audit.record(
            principal,
            "application.paid",
            ENTITY,
            application_id,
            old_value={"paymentStatus": application.payment_status},
            new_value={
                "paymentStatus": PAYMENT_PAID,
                "receiptNumber": receipt,
                "transactionReference": intent.id,
            },
        )
        logger.info("Application %s paid (%s, receipt %s)", application_id, intent.id, receipt)

        vendor = await self._vendors.get_by_id(paid.vendor_id)
        if vendor:
            self._notifier.notify(
                NOTIFY_PAID,
                vendor.email,
                paid.event_id,
                {
                    "applicationId": application_id,
                    "receiptNumber": receipt,
                    "amount": format_amount(amount, currency),
                },
            )
        return paid

    # ------------------------------------------------------------------
    # Sweeps and webhooks
    # ------------------------------------------------------------------

    async def mark_overdue(self, principal: Principal, now: datetime | None = None) -> int:
        if not (principal.can_moderate_applications or principal.is_system):
            raise ForbiddenError("Only the events office can run the overdue sweep")
        count = await self._repo.mark_overdue(now or utcnow())
        if count:
            logger.info("Marked %d payment(s) overdue", count)
        return count

    async def handle_gateway_event(self, payload: bytes, signature: str | None) -> str:
        """Apply a signed gateway event and return what was done with it."""
        event: dict[str, Any] = self._gateway.parse_webhook(payload, signature)
        event_type = event.get("type")
        if event_type != WEBHOOK_INTENT_SUCCEEDED:
            logger.debug("Ignoring gateway event %s", event_type)
            return "ignored"

        obj = (event.get("data") or {}).get("object") or {}
        application_id = (obj.get("metadata") or {}).get("application_id")
        intent_id = obj.get("id")
        if not application_id or not intent_id:
            logger.warning("Gateway event %s carries no application reference", event.get("id"))
            return "ignored"

        try:
            await self.finalize(SYSTEM_PRINCIPAL, application_id, intent_id)
        except (
            ConflictError,
            NotFoundError,
            InvalidStateError,
            ValidationError,
            PaymentDeclinedError,
        ) as exc:
            # The gateway retries non-2xx responses; these outcomes are final
            logger.warning("Gateway event for application %s not applied: %s", application_id, exc.message)
            return "skipped"
        return "processed"
