"""Request-scoped dependencies shared by the v1 routers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import after_commit, get_db
from app.services.notifications import (
    NotificationDispatcher,
    NotificationOutbox,
    get_dispatcher,
)


def get_notifier(
    session: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationDispatcher:
    """Notifications raised during the request, released only after its commit."""
    outbox = NotificationOutbox(dispatcher)
    after_commit(session, outbox.release)
    return outbox
