"""SQLAlchemy ORM model for vendor accounts.

A vendor owns its bazaar applications; the applications only point at events
by id, so there is no Vendor <-> Event object cycle.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.domain.mixins import TimestampMixin


class Vendor(Base, TimestampMixin):
    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # "pending" | "approved" | "rejected"
    verification_status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )

    # Stored document references (upload handled by the profile screens)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tax_card_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    documents_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    loyalty_forum: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    applications: Mapped[List["BazaarApplication"]] = relationship(
        back_populates="vendor", lazy="noload", passive_deletes=True
    )
