"""
WebSocket push-channel tests.
Covers: join handshake and reply ordering, token checks and close codes,
join timeout.
"""
from __future__ import annotations

import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from taskshare.core.config import settings
from taskshare.core.security import create_access_token, create_refresh_token
from taskshare.main import app
from taskshare.services.notification_service import notification_service

WS_URL = "/api/v1/ws"


@pytest.fixture
def ws_client() -> TestClient:
    return TestClient(app)


def _join(user_id: uuid.UUID, token: str | None) -> dict:
    message = {"type": "join-user-room", "userId": str(user_id)}
    if token is not None:
        message["token"] = token
    return message


def test_join_with_valid_token(ws_client: TestClient) -> None:
    user_id = uuid.uuid4()
    with ws_client.websocket_connect(WS_URL) as ws:
        ws.send_json(_join(user_id, create_access_token(str(user_id))))
        assert ws.receive_json() == {"type": "connected", "userId": str(user_id)}


def test_connected_precedes_pushed_events(
    ws_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    registry = notification_service.registry
    register = registry.register

    async def register_then_push(user_id: uuid.UUID, websocket: Any) -> None:
        await register(user_id, websocket)
        await registry.send_to_user(user_id, {"type": "taskCreated", "data": {}})

    monkeypatch.setattr(registry, "register", register_then_push)

    user_id = uuid.uuid4()
    with ws_client.websocket_connect(WS_URL) as ws:
        ws.send_json(_join(user_id, create_access_token(str(user_id))))
        assert ws.receive_json()["type"] == "connected"
        assert ws.receive_json()["type"] == "taskCreated"
        assert registry.is_connected(user_id)


def test_token_in_query_string(ws_client: TestClient) -> None:
    user_id = uuid.uuid4()
    token = create_access_token(str(user_id))
    with ws_client.websocket_connect(f"{WS_URL}?token={token}") as ws:
        ws.send_json(_join(user_id, None))
        assert ws.receive_json()["type"] == "connected"


@pytest.mark.parametrize(
    "token",
    [None, "garbage", create_refresh_token(str(uuid.uuid4()))],
    ids=["missing", "malformed", "refresh-token"],
)
def test_invalid_token_closes_4001(ws_client: TestClient, token: str | None) -> None:
    with ws_client.websocket_connect(WS_URL) as ws:
        ws.send_json(_join(uuid.uuid4(), token))
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 4001


def test_user_id_mismatch_closes_4003(ws_client: TestClient) -> None:
    token = create_access_token(str(uuid.uuid4()))
    with ws_client.websocket_connect(WS_URL) as ws:
        ws.send_json(_join(uuid.uuid4(), token))
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 4003


def test_join_timeout_closes_4008(
    ws_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "WS_JOIN_TIMEOUT_SECONDS", 0.1)
    with ws_client.websocket_connect(WS_URL) as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 4008


def test_wrong_first_message_rejected(ws_client: TestClient) -> None:
    with ws_client.websocket_connect(WS_URL) as ws:
        ws.send_json({"type": "subscribe"})
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 4001
