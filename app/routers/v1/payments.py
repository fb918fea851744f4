"""Payment housekeeping: the overdue sweep and the gateway webhook."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.response import DataResponse
from app.core.security import Principal, require_events_office
from app.db.base import get_db
from app.routers.dependencies import get_notifier
from app.schemas.application import OverdueSweepOut, WebhookAck
from app.services.gateway import PaymentGateway, get_payment_gateway
from app.services.notifications import NotificationDispatcher
from app.services.payments import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/overdue-sweep", response_model=DataResponse[OverdueSweepOut])
async def sweep_overdue_payments(
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Mark pending payments past their due date as overdue."""
    updated = await PaymentService(session, gateway, notifier).mark_overdue(principal)
    return {"data": OverdueSweepOut(updated=updated)}


@router.post("/webhook", response_model=WebhookAck)
async def gateway_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Signed callback from the payment gateway; authenticated by its signature only."""
    payload = await request.body()
    outcome = await PaymentService(session, gateway, notifier).handle_gateway_event(
        payload, stripe_signature
    )
    return WebhookAck(outcome=outcome)
