"""Public visitor-pass endpoints used by pass holders and gate scanners."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.db.base import get_db
from app.schemas.application import PassVerificationOut
from app.services.qr_codes import QrCodeIssuer, pass_verify_url, render_png

router = APIRouter(prefix="/visitor-passes", tags=["Visitor passes"])


@router.get("/{event_id}/qr.png", response_class=Response)
async def visitor_pass_image(
    event_id: str,
    email: str = Query(...),
    token: str = Query(...),
    session: AsyncSession = Depends(get_db),
):
    if not await QrCodeIssuer(session).verify(event_id, email, token):
        raise NotFoundError("Visitor pass")
    png = await asyncio.to_thread(render_png, pass_verify_url(event_id, email, token))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.get("/{event_id}/verify", response_model=PassVerificationOut)
async def verify_visitor_pass(
    event_id: str,
    email: str = Query(...),
    token: str = Query(...),
    session: AsyncSession = Depends(get_db),
):
    valid = await QrCodeIssuer(session).verify(event_id, email, token)
    return PassVerificationOut(valid=valid, event_id=event_id, visitor_email=email)
