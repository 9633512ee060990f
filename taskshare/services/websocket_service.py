"""
WebSocket channel registry.
Tracks live push-channel connections per user and delivers JSON messages.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ChannelRegistry:
    """
    Active WebSocket connections keyed by user id.
    A user may hold several connections (one per tab or device).
    Registration changes happen under a lock; sends go out in call order.
    """

    def __init__(self) -> None:
        self._channels: dict[uuid.UUID, list[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def register(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        async with self._lock:
            self._channels.setdefault(user_id, []).append(websocket)
        logger.info("Channel joined: user_id=%s", user_id)

    async def unregister(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        async with self._lock:
            connections = self._channels.get(user_id)
            if connections is None:
                return
            if websocket in connections:
                connections.remove(websocket)
            if not connections:
                del self._channels[user_id]
        logger.info("Channel left: user_id=%s", user_id)

    def is_connected(self, user_id: uuid.UUID) -> bool:
        return bool(self._channels.get(user_id))

    def connected_user_ids(self) -> list[uuid.UUID]:
        return list(self._channels)

    async def send_to_user(self, user_id: uuid.UUID, data: dict[str, Any]) -> int:
        """Send a JSON message to every connection of one user. Returns deliveries."""
        connections = list(self._channels.get(user_id, []))
        if not connections:
            return 0
        message = json.dumps(data)
        delivered = 0
        dead: list[WebSocket] = []
        for ws in connections:
            try:
                await ws.send_text(message)
                delivered += 1
            except Exception as exc:
                logger.warning("Dropping dead connection for user_id=%s: %s", user_id, exc)
                dead.append(ws)
        for ws in dead:
            await self.unregister(user_id, ws)
        return delivered

    async def broadcast(self, data: dict[str, Any]) -> int:
        """Send a JSON message to every connected client."""
        delivered = 0
        for user_id in self.connected_user_ids():
            delivered += await self.send_to_user(user_id, data)
        return delivered

    @property
    def connected_user_count(self) -> int:
        return len(self._channels)
