"""Test doubles and small builders shared by the test modules."""

import dataclasses
import itertools

import jwt

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.services.gateway import GatewayIntent, PaymentGateway, StripeGateway
from app.services.notifications import NotificationDispatcher

WEBHOOK_SECRET = "whsec_test"

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class RecordingNotifier(NotificationDispatcher):
    """Records intents instead of scheduling delivery."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def notify(self, kind, vendor_email, event_id, extra=None):
        self.sent.append((kind, vendor_email, event_id, extra or {}))

    def kinds(self):
        return [s[0] for s in self.sent]


class FakeGateway(PaymentGateway):
    """In-memory gateway; tests move intents to their final status explicitly."""

    def __init__(self):
        self.intents: dict[str, GatewayIntent] = {}
        self.created = []
        self.retrieved = []
        self.on_retrieve = None
        self._ids = itertools.count(1)
        self._verifier = StripeGateway(secret_key="sk_test", webhook_secret=WEBHOOK_SECRET)

    async def create_intent(self, amount, currency, metadata):
        intent_id = f"pi_test_{next(self._ids)}"
        intent = GatewayIntent(
            id=intent_id,
            status="requires_confirmation",
            amount=amount,
            currency=currency.upper(),
            client_secret=f"{intent_id}_secret",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        self.created.append((amount, currency, dict(metadata)))
        return intent

    async def retrieve_intent(self, intent_id):
        self.retrieved.append(intent_id)
        if intent_id not in self.intents:
            raise ValidationError(f"Unknown payment reference: {intent_id}")
        if self.on_retrieve is not None:
            await self.on_retrieve(intent_id)
        return self.intents[intent_id]

    def parse_webhook(self, payload, signature):
        return self._verifier.parse_webhook(payload, signature)

    def set_status(self, intent_id, status, **changes):
        self.intents[intent_id] = dataclasses.replace(
            self.intents[intent_id], status=status, **changes
        )

    def succeed(self, intent_id):
        self.set_status(intent_id, "succeeded")


def attendee_dicts(count):
    return [{"name": f"Attendee {i}", "email": f"attendee{i}@example.com"} for i in range(count)]


def make_token(principal_id, role, email=None):
    claims = {"sub": principal_id, "role": role}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth(principal_id, role, email=None):
    return {"Authorization": f"Bearer {make_token(principal_id, role, email)}"}
