"""Vendor account service.

Services receive an AsyncSession and the acting Principal, delegate DB work
to repositories and raise AppException subclasses for business rule
violations.

Rule: No FastAPI here. Pure Python business logic.
"""


from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.pagination import Page, PaginationParams
from app.core.security import Principal
from app.domain.vendor import Vendor
from app.repositories.audit import AuditRepository
from app.repositories.vendor import VendorRepository
from app.schemas.vendor import VendorProfileUpdate

VERIFICATION_APPROVED = "approved"
VERIFICATION_REJECTED = "rejected"

SORTABLE_COLUMNS = {"company_name", "created_at", "verification_status"}


class VendorService:
    def __init__(self, session: AsyncSession):
        self._repo = VendorRepository(session)
        self._audit = AuditRepository(session)

    async def get_profile(self, principal: Principal) -> Vendor:
        if not principal.is_vendor:
            raise ForbiddenError("Only vendors have a vendor profile")
        vendor = await self._repo.get_by_id(principal.id)
        if not vendor:
            raise NotFoundError("Vendor", principal.id)
        return vendor

    async def update_profile(self, principal: Principal, data: VendorProfileUpdate) -> Vendor:
        vendor = await self.get_profile(principal)  # raises 404 if missing
        changes = data.model_dump(exclude_none=True, exclude_unset=True)
        if not changes:
            return vendor
        updated = await self._repo.update(principal.id, **changes)
        return updated  # type: ignore[return-value]

    async def list_vendors(
        self,
        principal: Principal,
        pagination: PaginationParams,
        verification_status: str | None = None,
    ) -> Page[Vendor]:
        if not principal.can_moderate_applications:
            raise ForbiddenError("Only the events office can list vendors")
        return await self._repo.list(
            pagination,
            order_by=pagination.sort_column(SORTABLE_COLUMNS, "created_at"),
            filters={"verification_status": verification_status},
        )

    async def set_verification(self, principal: Principal, vendor_id: str, approved: bool) -> Vendor:
        if not principal.can_moderate_applications:
            raise ForbiddenError("Only the events office can verify vendors")
        vendor = await self._repo.get_by_id(vendor_id)
        if not vendor:
            raise NotFoundError("Vendor", vendor_id)

        previous = vendor.verification_status
        status = VERIFICATION_APPROVED if approved else VERIFICATION_REJECTED
        updated = await self._repo.update(
            vendor_id, is_verified=approved, verification_status=status
        )
        await self._audit.record(
            principal,
            "vendor.verification",
            "vendor",
            vendor_id,
            old_value={"verificationStatus": previous},
            new_value={"verificationStatus": status},
        )
        return updated  # type: ignore[return-value]
