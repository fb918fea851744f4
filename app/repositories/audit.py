"""Audit trail repository — append-only."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Principal
from app.domain.audit import AuditTrail


class AuditRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        principal: Principal,
        action: str,
        entity_type: str,
        entity_id: str | None,
        *,
        old_value: Any = None,
        new_value: Any = None,
        description: str | None = None,
    ) -> None:
        self._session.add(
            AuditTrail(
                actor_id=principal.id,
                actor_role=principal.role,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                old_value=old_value,
                new_value=new_value,
                description=description,
            )
        )
        await self._session.flush()

    async def has_action(self, entity_id: str, action: str) -> bool:
        result = await self._session.execute(
            select(AuditTrail.id)
            .where(AuditTrail.entity_id == entity_id)
            .where(AuditTrail.action == action)
            .limit(1)
        )
        return result.first() is not None
