"""Card-payment gateway client (Stripe-compatible REST API over httpx).

The gateway is the only authority on whether a charge succeeded: the server
creates payment intents here and re-reads them before marking anything paid.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import settings
from app.core.exceptions import GatewayError, ValidationError

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"
INTENT_PROCESSING = "processing"
# Statuses meaning the card was declined or the attempt is dead
INTENT_DECLINED_STATUSES = ("requires_payment_method", "canceled")

# Reject webhook signatures older than this (seconds)
WEBHOOK_TOLERANCE = 300


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    status: str
    amount: int  # minor units
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    last_error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == INTENT_SUCCEEDED

    @property
    def declined(self) -> bool:
        return self.status in INTENT_DECLINED_STATUSES

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "GatewayIntent":
        last_error = payload.get("last_payment_error") or {}
        return cls(
            id=payload["id"],
            status=payload.get("status", ""),
            amount=int(payload.get("amount") or 0),
            currency=(payload.get("currency") or "").upper(),
            client_secret=payload.get("client_secret"),
            metadata=dict(payload.get("metadata") or {}),
            last_error=last_error.get("message"),
        )


class PaymentGateway(ABC):
    """Interface of the card-payment provider used by the payment service."""

    @abstractmethod
    async def create_intent(
        self, amount: int, currency: str, metadata: dict[str, str]
    ) -> GatewayIntent: ...

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> GatewayIntent: ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify the signature header and return the decoded event."""


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        webhook_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._secret_key = secret_key if secret_key is not None else settings.payment_gateway_secret_key
        self._base_url = (base_url or settings.payment_gateway_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.payment_gateway_timeout
        self._webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.payment_gateway_webhook_secret
        )
        self._transport = transport

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, data: dict[str, Any] | None = None) -> dict:
        if not self._secret_key:
            raise GatewayError(
                "Card payments are not configured. Please try again later or contact the events office."
            )

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                auth=(self._secret_key, ""),
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, data=data)
        except httpx.TimeoutException as exc:
            logger.warning("Payment gateway timed out on %s %s", method, path)
            raise GatewayError(
                "The payment provider did not respond in time. No charge was recorded; please retry."
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Payment gateway unreachable: %s", exc)
            raise GatewayError(
                "The payment provider is unreachable. No charge was recorded; please retry."
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = (body.get("error") or {}).get("message") or response.reason_phrase
            if response.status_code == 404:
                raise ValidationError(f"Unknown payment reference: {message}")
            logger.error("Payment gateway error %s: %s", response.status_code, message)
            raise GatewayError(f"The payment provider rejected the request: {message}")

        return body

    # ------------------------------------------------------------------
    # Payment intents
    # ------------------------------------------------------------------

    async def create_intent(
        self, amount: int, currency: str, metadata: dict[str, str]
    ) -> GatewayIntent:
        data: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value

        payload = await self._request("POST", "/payment_intents", data=data)
        intent = GatewayIntent.from_payload(payload)
        logger.info("Created payment intent %s for %s %s", intent.id, amount, currency)
        return intent

    async def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        if not intent_id or "/" in intent_id:
            raise ValidationError("A valid paymentIntentId is required")
        payload = await self._request("GET", f"/payment_intents/{intent_id}")
        return GatewayIntent.from_payload(payload)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify a ``t=<ts>,v1=<hex>`` signature header and return the event."""
        if not self._webhook_secret:
            raise GatewayError("Payment webhooks are not configured")
        if not signature:
            raise ValidationError("Missing payment webhook signature")

        parts: dict[str, list[str]] = {}
        for item in signature.split(","):
            key, _, value = item.strip().partition("=")
            parts.setdefault(key, []).append(value)

        try:
            timestamp = int(parts.get("t", [""])[0])
        except ValueError as exc:
            raise ValidationError("Malformed payment webhook signature") from exc

        if abs(time.time() - timestamp) > WEBHOOK_TOLERANCE:
            raise ValidationError("Payment webhook signature has expired")

        signed = f"{timestamp}.".encode() + payload
        expected = hmac.new(self._webhook_secret.encode(), signed, hashlib.sha256).hexdigest()
        if not any(hmac.compare_digest(expected, candidate) for candidate in parts.get("v1", [])):
            raise ValidationError("Invalid payment webhook signature")

        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValidationError("Malformed payment webhook payload") from exc


def sign_webhook_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build the signature header the gateway sends (used by tests and local tooling)."""
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway client."""
    if not settings.payment_gateway_enabled:
        logger.warning("PAYMENT_GATEWAY_SECRET_KEY is not set; card payments will fail")
    return StripeGateway()
