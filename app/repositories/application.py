"""Bazaar application repository.

Every state transition is one conditional statement scoped by the expected
prior state. Each method returns whether the row matched, so the caller can
tell "I won" from "someone else already moved this application".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, update

from app.domain.application import (
    PAYMENT_OVERDUE,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    BazaarApplication,
)
from app.domain.mixins import utcnow
from app.repositories.base import BaseRepository

# Application statuses in which a payment may be finalized
PAYABLE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)


class ApplicationRepository(BaseRepository[BazaarApplication]):
    model = BazaarApplication

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_for_vendor_event(
        self, vendor_id: str, event_id: str
    ) -> BazaarApplication | None:
        result = await self._session.execute(
            self._base_query()
            .where(BazaarApplication.vendor_id == vendor_id)
            .where(BazaarApplication.event_id == event_id)
        )
        return result.scalars().first()

    async def list_paid_for_event(self, event_id: str) -> list[BazaarApplication]:
        result = await self._session.execute(
            self._base_query()
            .where(BazaarApplication.event_id == event_id)
            .where(BazaarApplication.payment_status == PAYMENT_PAID)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Conditional transitions
    # ------------------------------------------------------------------

    async def _conditional_update(self, *criteria, **values: Any) -> bool:
        values.setdefault("updated_at", utcnow())
        result = await self._session.execute(
            update(BazaarApplication)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount > 0

    async def transition_status(
        self,
        application_id: str,
        expected: str,
        *,
        expect_paid: bool | None = None,
        **values: Any,
    ) -> bool:
        """``status: expected -> values['status']`` only if still *expected*.

        With *expect_paid* the row must also still be paid (``True``) or not
        paid (``False``), so values computed from the payment state that was
        read cannot overwrite a payment that landed in between.
        """
        criteria = [
            BazaarApplication.id == application_id,
            BazaarApplication.status == expected,
        ]
        if expect_paid is True:
            criteria.append(BazaarApplication.payment_status == PAYMENT_PAID)
        elif expect_paid is False:
            criteria.append(
                or_(
                    BazaarApplication.payment_status.is_(None),
                    BazaarApplication.payment_status != PAYMENT_PAID,
                )
            )
        return await self._conditional_update(*criteria, **values)

    async def mark_paid(self, application_id: str, **values: Any) -> bool:
        """Set payment_status=paid where the payment is not yet paid.

        Matches a missing, pending or overdue payment on a pending/approved
        application; a paid, rejected or deleted application matches nothing.
        """
        return await self._conditional_update(
            BazaarApplication.id == application_id,
            BazaarApplication.status.in_(PAYABLE_STATUSES),
            or_(
                BazaarApplication.payment_status.is_(None),
                BazaarApplication.payment_status.in_((PAYMENT_PENDING, PAYMENT_OVERDUE)),
            ),
            payment_status=PAYMENT_PAID,
            **values,
        )

    async def replace_attendees(
        self,
        application_id: str,
        attendees: list[dict[str, Any]],
        qr_codes: list[dict[str, Any]] | None = None,
        *,
        expected_payment_status: str | None = None,
    ) -> bool:
        """Swap the whole attendee list in one statement.

        When *qr_codes* is given the pass list is swapped in the same
        statement, guarded by the payment status the passes were computed for.
        """
        criteria = [
            BazaarApplication.id == application_id,
            BazaarApplication.status != STATUS_REJECTED,
        ]
        values: dict[str, Any] = {"attendees": attendees}
        if qr_codes is not None:
            values["qr_codes"] = qr_codes
        if expected_payment_status is None:
            criteria.append(
                or_(
                    BazaarApplication.payment_status.is_(None),
                    BazaarApplication.payment_status != PAYMENT_PAID,
                )
            )
        else:
            criteria.append(BazaarApplication.payment_status == expected_payment_status)
        return await self._conditional_update(*criteria, **values)

    async def set_qr_codes(self, application_id: str, qr_codes: list[dict[str, Any]]) -> bool:
        """Store passes; only a paid application may hold any."""
        return await self._conditional_update(
            BazaarApplication.id == application_id,
            BazaarApplication.payment_status == PAYMENT_PAID,
            qr_codes=qr_codes,
        )

    async def mark_overdue(self, now: datetime) -> int:
        """Move pending payments past their due date to overdue; return the count."""
        result = await self._session.execute(
            update(BazaarApplication)
            .where(BazaarApplication.payment_status == PAYMENT_PENDING)
            .where(BazaarApplication.payment_due_date.is_not(None))
            .where(BazaarApplication.payment_due_date < now)
            .values(payment_status=PAYMENT_OVERDUE, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount or 0

    async def delete_if_cancellable(self, application_id: str, vendor_id: str) -> bool:
        """DELETE only while pending and unpaid, and only for the owning vendor."""
        result = await self._session.execute(
            delete(BazaarApplication)
            .where(BazaarApplication.id == application_id)
            .where(BazaarApplication.vendor_id == vendor_id)
            .where(BazaarApplication.status == STATUS_PENDING)
            .where(
                or_(
                    BazaarApplication.payment_status.is_(None),
                    BazaarApplication.payment_status != PAYMENT_PAID,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount > 0
