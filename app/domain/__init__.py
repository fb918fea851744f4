"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  vendor.py       — Vendor accounts
  event.py        — Events (read-only lookups by id)
  application.py  — Bazaar applications: attendees, booth, payment, visitor QR codes
  audit.py        — Immutable audit trail of lifecycle/payment transitions
  mixins.py       — Shared TimestampMixin
"""

from app.domain.application import BazaarApplication
from app.domain.audit import AuditTrail
from app.domain.event import Event
from app.domain.vendor import Vendor

__all__ = [
    "AuditTrail",
    "BazaarApplication",
    "Event",
    "Vendor",
]
