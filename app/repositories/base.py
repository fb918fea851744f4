"""Generic async repository with pagination and fresh reads."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import Page, PaginationParams
from app.db.base import Base
from app.domain.mixins import utcnow

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository.

    Reads use ``populate_existing`` so that rows changed by a bulk conditional
    UPDATE in the same session are never served stale from the identity map.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self._session = session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        return select(self.model).execution_options(populate_existing=True)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def list(
        self,
        pagination: PaginationParams,
        *,
        order_by: str = "created_at",
        filters: dict[str, Any] | None = None,
    ) -> Page[ModelT]:
        """One page of rows matching the equality *filters*; ``None`` values are skipped."""
        q = self._base_query()
        for column, value in (filters or {}).items():
            if value is not None:
                q = q.where(getattr(self.model, column) == value)

        total = (
            await self._session.execute(select(func.count()).select_from(q.subquery()))
        ).scalar_one()

        col = getattr(self.model, order_by)
        q = q.order_by(col.asc() if pagination.order == "asc" else col.desc(), self.model.id)
        q = q.offset(pagination.offset).limit(pagination.limit)

        items = (await self._session.execute(q)).scalars().all()
        return Page(list(items), total, pagination.page, pagination.limit)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(**kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        if "updated_at" not in kwargs and hasattr(self.model, "updated_at"):
            kwargs["updated_at"] = utcnow()

        await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**kwargs)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return await self.get_by_id(entity_id)
