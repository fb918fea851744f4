"""Vendor account endpoints: own profile, and verification by the events office.

Pattern shared by all v1 routers:
  1. Declare a router with prefix and tags
  2. Inject DB session + current principal via Depends
  3. Instantiate the service with the session
  4. Call service methods and wrap result in response envelope
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import PaginationParams
from app.core.response import DataResponse, ListResponse, paginated
from app.core.security import Principal, require_events_office, require_vendor
from app.db.base import get_db
from app.schemas.vendor import VendorOut, VendorProfileUpdate, VendorVerificationRequest
from app.services.vendor import VendorService

router = APIRouter(prefix="/vendors", tags=["Vendors"])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("", response_model=ListResponse[VendorOut])
async def list_vendors(
    verification_status: Optional[str] = Query(
        default=None, alias="verificationStatus", description="pending | approved | rejected"
    ),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
):
    """List vendor accounts (paginated). Filter by ?verificationStatus=."""
    page = await VendorService(session).list_vendors(
        principal, pagination, verification_status=verification_status
    )
    return paginated(page, VendorOut.model_validate)


@router.get("/me", response_model=DataResponse[VendorOut])
async def get_my_profile(
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
):
    vendor = await VendorService(session).get_profile(principal)
    return {"data": VendorOut.model_validate(vendor)}


@router.patch("/me", response_model=DataResponse[VendorOut])
async def update_my_profile(
    body: VendorProfileUpdate,
    principal: Principal = Depends(require_vendor),
    session: AsyncSession = Depends(get_db),
):
    vendor = await VendorService(session).update_profile(principal, body)
    return {"data": VendorOut.model_validate(vendor)}


@router.post("/{vendor_id}/verification", response_model=DataResponse[VendorOut])
async def set_vendor_verification(
    vendor_id: str,
    body: VendorVerificationRequest,
    principal: Principal = Depends(require_events_office),
    session: AsyncSession = Depends(get_db),
):
    vendor = await VendorService(session).set_verification(principal, vendor_id, body.approved)
    return {"data": VendorOut.model_validate(vendor)}
