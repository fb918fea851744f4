"""Vendor-facing bazaar application endpoints.

The vendor addresses an application by the event it applied to; the
service resolves it to the application row owned by the caller.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request, status
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from app.core.exceptions import ValidationError
from app.core.pagination import PaginationParams
from app.core.response import DataResponse, ListResponse, paginated
from app.core.security import Principal, require_vendor
from app.db.base import get_db
from app.routers.dependencies import get_notifier
from app.schemas.application import (
    ApplicationCreate,
    ApplicationOut,
    AttendeeEntry,
    PaymentConfirmOut,
    PaymentConfirmRequest,
    PaymentIntentOut,
)
from app.services.applications import ApplicationService
from app.services.attendees import AttendeeInput, AttendeeService, UploadedDocument
from app.services.gateway import PaymentGateway, get_payment_gateway
from app.services.notifications import NotificationDispatcher
from app.services.payments import PaymentService
from app.services.storage import DocumentStorage, get_storage

router = APIRouter(prefix="/vendors", tags=["Vendor applications"])

_attendee_list = TypeAdapter(list[AttendeeEntry])


def _apps(session: AsyncSession, notifier: NotificationDispatcher) -> ApplicationService:
    return ApplicationService(session, notifier)


# ------------------------------------------------------------------
# Apply / read
# ------------------------------------------------------------------

@router.post(
    "/applications",
    response_model=DataResponse[ApplicationOut],
    status_code=status.HTTP_201_CREATED,
)
async def apply_to_event(
    body: ApplicationCreate,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Apply for a booth at a bazaar or booth event. ID documents are uploaded afterwards."""
    application = await _apps(session, notifier).apply(
        principal,
        body.event_id,
        [a.model_dump() for a in body.attendees],
        body.booth_size,
        booth_start=body.booth_start_time,
        booth_end=body.booth_end_time,
        duration_weeks=body.booth_duration_weeks,
    )
    return {"data": ApplicationOut.from_model(application)}


@router.get("/my-applications", response_model=ListResponse[ApplicationOut])
async def list_my_applications(
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    page = await _apps(session, notifier).list_for_vendor(principal, pagination)
    return paginated(page, ApplicationOut.from_model)


@router.get("/applications/{event_id}", response_model=DataResponse[ApplicationOut])
async def get_my_application(
    event_id: str,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    application = await _apps(session, notifier).get_for_event(principal, event_id)
    return {"data": ApplicationOut.from_model(application)}


# ------------------------------------------------------------------
# Attendees (multipart)
# ------------------------------------------------------------------

@router.post("/applications/{event_id}/attendees", response_model=DataResponse[ApplicationOut])
async def update_attendees(
    event_id: str,
    request: Request,
    attendees: str = Form(..., description="JSON array of {name, email, fileField?}"),
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    storage: DocumentStorage = Depends(get_storage),
):
    """Replace the attendee list; each ``fileField`` names the part carrying that attendee's ID."""
    try:
        entries = _attendee_list.validate_json(attendees)
    except PydanticValidationError as exc:
        raise ValidationError("attendees must be a JSON array of {name, email, fileField?}") from exc

    files: dict[str, UploadedDocument] = {}
    form = await request.form()
    for field, value in form.multi_items():
        if isinstance(value, UploadFile):
            files[field] = UploadedDocument(
                filename=value.filename or "",
                content_type=value.content_type,
                content=await value.read(),
            )

    application = await _apps(session, notifier).get_for_event(principal, event_id)
    updated = await AttendeeService(session, storage).update_attendees(
        principal,
        application.id,
        [AttendeeInput(name=e.name, email=e.email, file_field=e.file_field) for e in entries],
        files,
    )
    return {"data": ApplicationOut.from_model(updated)}


# ------------------------------------------------------------------
# Payment
# ------------------------------------------------------------------

@router.post("/applications/{event_id}/payment/intent", response_model=DataResponse[PaymentIntentOut])
async def create_payment_intent(
    event_id: str,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    application = await _apps(session, notifier).get_for_event(principal, event_id)
    result = await PaymentService(session, gateway, notifier).create_intent(principal, application.id)
    return {
        "data": PaymentIntentOut(
            client_secret=result.client_secret,
            payment_intent_id=result.payment_intent_id,
            amount=result.amount,
            currency=result.currency,
            display_amount=result.display_amount,
        )
    }


@router.post("/applications/{event_id}/payment/confirm", response_model=DataResponse[PaymentConfirmOut])
async def confirm_payment(
    event_id: str,
    body: PaymentConfirmRequest,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Record a card payment after the gateway confirms it."""
    application = await _apps(session, notifier).get_for_event(principal, event_id)
    paid = await PaymentService(session, gateway, notifier).finalize(
        principal, application.id, body.payment_intent_id
    )
    return {
        "data": PaymentConfirmOut(
            message="Payment recorded successfully",
            application=ApplicationOut.from_model(paid),
        )
    }


# ------------------------------------------------------------------
# Cancel
# ------------------------------------------------------------------

@router.delete("/my-applications/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_application(
    event_id: str,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    service = _apps(session, notifier)
    application = await service.get_for_event(principal, event_id)
    await service.cancel(principal, application.id)
