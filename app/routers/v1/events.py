"""Events-office review of bazaar applications."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import PaginationParams
from app.core.response import DataResponse, ListResponse, paginated
from app.core.security import Principal, require_events_office
from app.db.base import get_db
from app.routers.dependencies import get_notifier
from app.schemas.application import ApplicationOut, ApproveRequest, RejectRequest
from app.services.applications import ApplicationService
from app.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/events", tags=["Events office"])


@router.get("/{event_id}/applications", response_model=ListResponse[ApplicationOut])
async def list_event_applications(
    event_id: str,
    filter_status: Optional[str] = Query(
        default=None, alias="status", description="pending | approved | rejected"
    ),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    page = await ApplicationService(session, notifier).list_for_event(
        principal, event_id, pagination, status=filter_status
    )
    return paginated(page, ApplicationOut.from_model)


@router.post(
    "/{event_id}/applications/{application_id}/approve",
    response_model=DataResponse[ApplicationOut],
)
async def approve_application(
    event_id: str,
    application_id: str,
    body: Optional[ApproveRequest] = Body(default=None),
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Approve a pending application and open its participation-fee payment."""
    application = await ApplicationService(session, notifier).approve(
        principal,
        application_id,
        booth_location=body.booth_location if body else None,
        event_id=event_id,
    )
    return {"data": ApplicationOut.from_model(application)}


@router.post(
    "/{event_id}/applications/{application_id}/reject",
    response_model=DataResponse[ApplicationOut],
)
async def reject_application(
    event_id: str,
    application_id: str,
    body: Optional[RejectRequest] = Body(default=None),
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    application = await ApplicationService(session, notifier).reject(
        principal,
        application_id,
        reason=body.reason if body else None,
        event_id=event_id,
    )
    return {"data": ApplicationOut.from_model(application)}
