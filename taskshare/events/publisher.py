"""
Post-commit event dispatch.

Services queue events on the session while a request is in flight. The
session owner hands them to the notification fan-out once the transaction
has committed, or drops them on rollback, so clients never hear about a
change that was not persisted.
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from taskshare.events.types import TaskEvent
from taskshare.services.notification_service import notification_service

logger = logging.getLogger(__name__)

_PENDING_KEY = "taskshare.pending_events"


def queue_event(db: AsyncSession, event: TaskEvent) -> None:
    db.info.setdefault(_PENDING_KEY, []).append(event)


def pending_events(db: AsyncSession) -> list[TaskEvent]:
    return list(db.info.get(_PENDING_KEY, []))


def discard_pending_events(db: AsyncSession) -> None:
    dropped = db.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.info("Discarded %d change event(s) after rollback", len(dropped))


async def dispatch_pending_events(db: AsyncSession) -> None:
    """Deliver queued events in emission order. Never raises."""
    events: list[TaskEvent] = db.info.pop(_PENDING_KEY, [])
    for event in events:
        await notification_service.publish(event)
