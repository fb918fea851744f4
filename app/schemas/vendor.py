"""Vendor Pydantic schemas (request DTOs and response models)."""


from datetime import datetime

from app.schemas.common import CamelModel

class VendorProfileUpdate(CamelModel):
    company_name: str | None = None
    logo_url: str | None = None
    tax_card_url: str | None = None
    documents_url: str | None = None
    loyalty_forum: str | None = None

class VendorVerificationRequest(CamelModel):
    approved: bool

class VendorOut(CamelModel):
    id: str
    email: str
    company_name: str
    is_verified: bool
    verification_status: str
    logo_url: str | None = None
    tax_card_url: str | None = None
    documents_url: str | None = None
    loyalty_forum: str | None = None
    created_at: datetime
    updated_at: datetime
