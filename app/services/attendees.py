"""Attendee list and identity-document management.

The vendor resubmits the whole attendee list; each entry either keeps the ID
document already on file for that attendee (matched by email) or brings a new
upload. Everything is validated before any file is written, and the list is
replaced with one UPDATE.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.core.security import Principal
from app.domain.application import PAYMENT_PAID, STATUS_REJECTED, BazaarApplication
from app.repositories.application import ApplicationRepository
from app.repositories.audit import AuditRepository
from app.services.applications import ENTITY, validate_attendee_identities
from app.services.qr_codes import reconcile_passes
from app.services.storage import DocumentStorage

logger = logging.getLogger(__name__)

_ALLOWED_CONTENT_TYPES = {"application/pdf", "image/jpeg", "image/png"}
_ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}


@dataclass(frozen=True)
class AttendeeInput:
    name: str
    email: str
    # Multipart field carrying a new ID document, if any
    file_field: str | None = None


@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    content_type: str | None
    content: bytes


def _label(index: int, entry: AttendeeInput) -> str:
    who = entry.name.strip() or entry.email.strip() or "unnamed"
    return f"Attendee at index {index} ({who})"


def _is_supported(document: UploadedDocument) -> bool:
    if (document.content_type or "").lower() in _ALLOWED_CONTENT_TYPES:
        return True
    filename = (document.filename or "").lower()
    return any(filename.endswith(ext) for ext in _ALLOWED_EXTENSIONS)


def _check_document(index: int, entry: AttendeeInput, document: UploadedDocument) -> None:
    if not _is_supported(document):
        raise ValidationError(
            f"{_label(index, entry)}: ID document must be a PDF, JPEG or PNG file"
        )
    if not document.content:
        raise ValidationError(f"{_label(index, entry)}: uploaded ID document is empty")
    if len(document.content) > settings.max_upload_size_bytes:
        raise ValidationError(
            f"{_label(index, entry)}: ID document exceeds the {settings.max_upload_size_mb}MB limit"
        )


class AttendeeService:
    def __init__(self, session: AsyncSession, storage: DocumentStorage):
        self._repo = ApplicationRepository(session)
        self._audit = AuditRepository(session)
        self._storage = storage

    async def update_attendees(
        self,
        principal: Principal,
        application_id: str,
        entries: Sequence[AttendeeInput],
        files: Mapping[str, UploadedDocument] | None = None,
    ) -> BazaarApplication:
        files = files or {}
        application = await self._repo.get_by_id(application_id)
        if not application:
            raise NotFoundError("Application", application_id)
        if application.vendor_id != principal.id:
            raise ForbiddenError("You can only edit attendees of your own applications")
        if application.status == STATUS_REJECTED:
            raise InvalidStateError("Attendees of a rejected application cannot be changed")

        validate_attendee_identities(
            [{"name": e.name, "email": e.email} for e in entries]
        )

        existing = {
            (a.get("email") or "").strip().lower(): (a.get("idDocumentPath") or "").strip()
            for a in application.attendees or []
        }

        # Resolve every entry before touching storage
        uploads: dict[int, UploadedDocument] = {}
        for index, entry in enumerate(entries):
            document = files.get(entry.file_field) if entry.file_field else None
            if entry.file_field and document is None:
                raise ValidationError(
                    f"{_label(index, entry)}: no file was uploaded in field '{entry.file_field}'"
                )
            if document is not None:
                _check_document(index, entry, document)
                uploads[index] = document
            elif not existing.get(entry.email.strip().lower()):
                raise ValidationError(f"{_label(index, entry)} is missing an ID document")

        written: list[str] = []
        try:
            attendees: list[dict[str, Any]] = []
            for index, entry in enumerate(entries):
                if index in uploads:
                    document = uploads[index]
                    path = await self._storage.save(application_id, document.filename, document.content)
                    written.append(path)
                else:
                    path = existing[entry.email.strip().lower()]
                attendees.append(
                    {"name": entry.name.strip(), "email": entry.email.strip(), "idDocumentPath": path}
                )

            stored = await self._persist(application, attendees)
        except Exception:
            for path in written:
                await self._storage.delete(path)
            raise

        await self._audit.record(
            principal,
            "application.attendees",
            ENTITY,
            application_id,
            old_value={"count": len(existing)},
            new_value={"count": len(attendees), "uploaded": len(written)},
        )
        logger.info(
            "Application %s attendees updated (%d attendees, %d new documents)",
            application_id,
            len(attendees),
            len(written),
        )
        return stored

    async def _persist(
        self, application: BazaarApplication, attendees: list[dict[str, Any]]
    ) -> BazaarApplication:
        if application.payment_status == PAYMENT_PAID:
            passes = reconcile_passes(application.event_id, attendees, application.qr_codes)
            ok = await self._repo.replace_attendees(
                application.id, attendees, passes, expected_payment_status=PAYMENT_PAID
            )
        else:
            ok = await self._repo.replace_attendees(application.id, attendees)

        if not ok:
            current = await self._repo.get_by_id(application.id)
            if current is None:
                raise ConflictError("The application was cancelled while attendees were being updated")
            if current.status == STATUS_REJECTED:
                raise InvalidStateError("Attendees of a rejected application cannot be changed")
            raise ConflictError("The application changed while attendees were being updated; please retry")

        updated = await self._repo.get_by_id(application.id)
        return updated  # type: ignore[return-value]
