"""
Notification fan-out service.
Pushes task change events to the live channels of the users they concern.
Delivery is best-effort: nothing is persisted, acknowledged or retried.
"""
from __future__ import annotations

import logging
import uuid

from taskshare.core.config import settings
from taskshare.events.types import TaskEvent
from taskshare.services.websocket_service import ChannelRegistry

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, registry: ChannelRegistry, *, broadcast_all: bool = False) -> None:
        self.registry = registry
        self.broadcast_all = broadcast_all

    def recipients(self, event: TaskEvent) -> list[uuid.UUID]:
        """Connected users that will receive this event."""
        connected = self.registry.connected_user_ids()
        if self.broadcast_all:
            return connected
        return [user_id for user_id in connected if user_id in event.audience]

    async def publish(self, event: TaskEvent) -> int:
        """
        Deliver one event. Failures are logged and swallowed so that a
        delivery problem never fails the mutation that produced the event.
        """
        try:
            message = event.to_message()
            if self.broadcast_all:
                delivered = await self.registry.broadcast(message)
            else:
                delivered = 0
                for user_id in self.recipients(event):
                    delivered += await self.registry.send_to_user(user_id, message)
        except Exception:
            logger.exception(
                "Failed to publish %s for task_id=%s",
                event.event_type.value,
                event.task_id,
            )
            return 0

        logger.debug(
            "Published %s for task_id=%s to %d connection(s)",
            event.event_type.value,
            event.task_id,
            delivered,
        )
        return delivered


notification_service = NotificationService(
    ChannelRegistry(), broadcast_all=settings.NOTIFY_BROADCAST_ALL
)
