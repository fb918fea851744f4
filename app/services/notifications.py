"""Notification intents emitted by the application and payment lifecycle.

Delivery (email, push) is owned by another service. Dispatch here is
fire-and-forget: a failing delivery is logged and never undoes the transition
that triggered it. Within an HTTP request intents go through a
:class:`NotificationOutbox` so nothing is sent for a transaction that rolls
back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

NOTIFY_APPROVED = "approved"
NOTIFY_REJECTED = "rejected"
NOTIFY_PAID = "paid"

NOTIFICATION_KINDS = (NOTIFY_APPROVED, NOTIFY_REJECTED, NOTIFY_PAID)


class NotificationDispatcher:
    """Schedules delivery in the background so callers are never delayed."""

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    def notify(
        self,
        kind: str,
        vendor_email: str,
        event_id: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        if kind not in NOTIFICATION_KINDS:
            logger.warning("Ignoring unknown notification kind %r", kind)
            return
        task = asyncio.create_task(self.dispatch(kind, vendor_email, event_id, extra or {}))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def dispatch(
        self, kind: str, vendor_email: str, event_id: str, extra: dict[str, Any]
    ) -> None:
        """Deliver now; a failure is logged, never raised."""
        try:
            await self.deliver(kind, vendor_email, event_id, extra)
        except Exception:
            logger.exception("Notification %s to %s failed", kind, vendor_email)

    async def deliver(
        self, kind: str, vendor_email: str, event_id: str, extra: dict[str, Any]
    ) -> None:
        """Hand the intent to the delivery channel. The default only logs it."""
        logger.info("notify %s -> %s (event %s) %s", kind, vendor_email, event_id, extra)


class NotificationOutbox(NotificationDispatcher):
    """Per-request queue of intents, delivered only once the request has committed.

    Services call :meth:`notify` mid-transaction; ``transaction`` calls
    :meth:`release` after a successful commit and drops it when the
    transaction rolls back.
    """

    def __init__(self, target: NotificationDispatcher) -> None:
        super().__init__()
        self._target = target
        self._queued: list[tuple[str, str, str, dict[str, Any]]] = []

    @property
    def queued(self) -> list[tuple[str, str, str, dict[str, Any]]]:
        return list(self._queued)

    def notify(
        self,
        kind: str,
        vendor_email: str,
        event_id: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        if kind not in NOTIFICATION_KINDS:
            logger.warning("Ignoring unknown notification kind %r", kind)
            return
        self._queued.append((kind, vendor_email, event_id, extra or {}))

    def release(self) -> None:
        """Hand every queued intent to the target dispatcher."""
        queued, self._queued = self._queued, []
        for kind, vendor_email, event_id, extra in queued:
            self._target.notify(kind, vendor_email, event_id, extra)


_dispatcher = NotificationDispatcher()


def get_dispatcher() -> NotificationDispatcher:
    """The process-wide dispatcher that outboxes deliver through."""
    return _dispatcher
