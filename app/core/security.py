"""Bearer-token principals.

Tokens are issued by the university auth service; this API only verifies
them and turns the claims into an explicit :class:`Principal` that every
service operation receives as a parameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_EVENTS_OFFICE = "events_office"
ROLE_VENDOR = "vendor"
ROLE_STUDENT = "student"
ROLE_SYSTEM = "system"

_KNOWN_ROLES = {ROLE_ADMIN, ROLE_EVENTS_OFFICE, ROLE_VENDOR, ROLE_STUDENT}

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: str
    role: str
    email: str | None = None

    @property
    def is_vendor(self) -> bool:
        return self.role == ROLE_VENDOR

    @property
    def can_moderate_applications(self) -> bool:
        return self.role in (ROLE_EVENTS_OFFICE, ROLE_ADMIN)

    @property
    def is_system(self) -> bool:
        return self.role == ROLE_SYSTEM


# Used by the gateway webhook, which acts on behalf of no user.
SYSTEM_PRINCIPAL = Principal(id="payment-gateway", role=ROLE_SYSTEM)


def decode_token(token: str) -> Principal:
    """Verify *token* and build a Principal from its ``sub``/``role``/``email`` claims."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Session expired, please log in again") from exc
    except jwt.PyJWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise UnauthorizedError("Could not validate credentials") from exc

    subject = claims.get("sub")
    role = claims.get("role")
    if not subject or role not in _KNOWN_ROLES:
        raise UnauthorizedError("Could not validate credentials")
    return Principal(id=str(subject), role=role, email=claims.get("email"))


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Principal:
    if credentials is None:
        raise UnauthorizedError()
    return decode_token(credentials.credentials)


async def require_vendor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_vendor:
        raise ForbiddenError("Only vendors can perform this action")
    return principal


async def require_events_office(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.can_moderate_applications:
        raise ForbiddenError("Only the events office can perform this action")
    return principal
