"""Visitor QR passes, issued per attendee once a bazaar application is paid.

Each pass embeds a token that is an HMAC over ``event_id:email``, so a gate
scanner can verify it offline with the secret, and online through
:meth:`QrCodeIssuer.verify`.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import io
import logging
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.config import settings
from app.domain.application import STATUS_REJECTED, BazaarApplication
from app.domain.mixins import utcnow
from app.repositories.application import ApplicationRepository

logger = logging.getLogger(__name__)

PASS_ROUTE = "/api/v1/visitor-passes"


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def sign_pass(event_id: str, email: str, secret: str | None = None) -> str:
    key = (secret or settings.qr_signing_secret).encode()
    message = f"{event_id}:{_normalize_email(email)}".encode()
    digest = hmac.new(key, message, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def pass_image_url(event_id: str, email: str, token: str) -> str:
    query = urlencode({"email": _normalize_email(email), "token": token})
    return f"{settings.public_base_url}{PASS_ROUTE}/{event_id}/qr.png?{query}"


def pass_verify_url(event_id: str, email: str, token: str) -> str:
    query = urlencode({"email": _normalize_email(email), "token": token})
    return f"{settings.public_base_url}{PASS_ROUTE}/{event_id}/verify?{query}"


def build_pass(event_id: str, email: str, issued_at: datetime) -> dict[str, Any]:
    token = sign_pass(event_id, email)
    return {
        "visitorEmail": email,
        "qrCodeUrl": pass_image_url(event_id, email, token),
        "issuedAt": issued_at.isoformat(),
        "token": token,
    }


def reconcile_passes(
    event_id: str,
    attendees: list[dict[str, Any]],
    existing: list[dict[str, Any]] | None,
    issued_at: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return exactly one pass per attendee, keeping passes already issued.

    Attendees without a pass get a new one; passes of attendees no longer on
    the list are dropped.
    """
    by_email = {
        _normalize_email(p.get("visitorEmail", "")): p for p in (existing or [])
    }
    issued_at = issued_at or utcnow()
    passes = []
    for attendee in attendees:
        email = attendee.get("email", "")
        current = by_email.get(_normalize_email(email))
        passes.append(current if current is not None else build_pass(event_id, email, issued_at))
    return passes


def render_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()


class QrCodeIssuer:
    def __init__(self, session: AsyncSession):
        self._repo = ApplicationRepository(session)

    async def issue_for_application(self, application: BazaarApplication) -> list[dict[str, Any]]:
        """Issue passes for attendees that lack one; no-op when all are covered.

        Only called after the pending -> paid transition, and the write itself
        is guarded by ``payment_status = paid``.
        """
        existing = list(application.qr_codes or [])
        passes = reconcile_passes(application.event_id, application.attendees or [], existing)
        if passes == existing:
            logger.debug("Passes for application %s already issued", application.id)
            return existing

        stored = await self._repo.set_qr_codes(application.id, passes)
        if not stored:
            logger.warning("Application %s is no longer paid; passes not issued", application.id)
            return existing

        issued = sum(1 for p in passes if p not in existing)
        logger.info("Issued %d visitor pass(es) for application %s", issued, application.id)
        set_committed_value(application, "qr_codes", passes)
        return passes

    async def verify(self, event_id: str, email: str, token: str) -> bool:
        expected = sign_pass(event_id, email)
        if not token or not hmac.compare_digest(expected, token):
            return False

        wanted = _normalize_email(email)
        for application in await self._repo.list_paid_for_event(event_id):
            if application.status == STATUS_REJECTED:
                continue
            for issued in application.qr_codes or []:
                if _normalize_email(issued.get("visitorEmail", "")) == wanted:
                    return True
        return False
