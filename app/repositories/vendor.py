"""Vendor repository."""


from sqlalchemy import select

from app.domain.vendor import Vendor
from app.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    model = Vendor

    async def get_by_email(self, email: str) -> Vendor | None:
        result = await self._session.execute(
            select(Vendor).where(Vendor.email == email.strip().lower())
        )
        return result.scalars().first()
