"""
WebSocket push channel.
Clients connect, then join their personal channel by sending
{"type": "join-user-room", "userId": ..., "token": <access token>}.
The token may also be passed as the ?token= query parameter.
Heartbeat pings keep idle connections alive.
"""
from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from taskshare.core.config import settings
from taskshare.core.dependencies import user_id_from_token
from taskshare.core.exceptions import InvalidTokenException
from taskshare.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

JOIN_MESSAGE = "join-user-room"

CLOSE_INVALID_TOKEN = 4001
CLOSE_USER_MISMATCH = 4003
CLOSE_JOIN_TIMEOUT = 4008


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    The server sends:
        - {"type": "connected", "userId": "..."} once the channel is joined.
        - {"type": "ping"} every WS_HEARTBEAT_SECONDS.
        - {"type": "taskCreated" | "taskUpdated" | "taskDeleted" |
           "taskShared" | "taskUnshared", "data": {...}} on task changes.

    The client may answer pings with {"type": "pong"}.
    """
    await websocket.accept()

    try:
        join = await asyncio.wait_for(
            websocket.receive_json(), timeout=settings.WS_JOIN_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        await websocket.close(code=CLOSE_JOIN_TIMEOUT, reason="Join timeout")
        return
    except (WebSocketDisconnect, ValueError):
        return

    if not isinstance(join, dict) or join.get("type") != JOIN_MESSAGE:
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Expected join-user-room")
        return

    token = join.get("token") or websocket.query_params.get("token")
    if not token:
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Missing authentication token")
        return

    try:
        token_user_id = user_id_from_token(token)
    except InvalidTokenException:
        await websocket.close(code=CLOSE_INVALID_TOKEN, reason="Invalid or expired token")
        return

    # The announced identity must be the one the token proves
    if str(join.get("userId")) != str(token_user_id):
        await websocket.close(code=CLOSE_USER_MISMATCH, reason="Token user id mismatch")
        return

    await _serve_channel(websocket, token_user_id)


async def _serve_channel(websocket: WebSocket, user_id: uuid.UUID) -> None:
    registry = notification_service.registry
    # The handshake reply goes out before any event can reach this socket
    try:
        await websocket.send_json({"type": "connected", "userId": str(user_id)})
    except WebSocketDisconnect:
        logger.info("WebSocket client left during join: user_id=%s", user_id)
        return
    await registry.register(user_id, websocket)
    heartbeat_task = asyncio.create_task(_heartbeat(websocket))

    try:
        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "pong":
                logger.debug("Received pong from user_id=%s", user_id)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected: user_id=%s", user_id)
    except Exception as exc:
        logger.error("WebSocket error for user_id=%s: %s", user_id, exc)
    finally:
        heartbeat_task.cancel()
        try:
            await heartbeat_task
        except asyncio.CancelledError:
            pass
        await registry.unregister(user_id, websocket)


async def _heartbeat(websocket: WebSocket) -> None:
    """Send periodic pings to keep the connection alive."""
    while True:
        await asyncio.sleep(settings.WS_HEARTBEAT_SECONDS)
        try:
            await websocket.send_json({"type": "ping"})
        except Exception:
            break
