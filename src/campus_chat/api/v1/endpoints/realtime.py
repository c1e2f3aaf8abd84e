"""WebSocket transport for the chat realtime gateway."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from campus_chat.schemas.realtime import RealtimeEnvelope
from campus_chat.services.errors import AuthenticationFailed
from campus_chat.services.registry import ConnectionClosed

from ..dependencies import RuntimeDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat", "realtime"])

# Application-defined close code for rejected credentials
WS_CLOSE_AUTH_FAILED = 4001


class WebSocketConnection:
    """Connection handle writing JSON frames to a FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        # Pushes from other users' handlers may race with this socket's own replies.
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        frame = RealtimeEnvelope(type=event, data=payload).model_dump(mode="json")
        async with self._send_lock:
            try:
                await self.websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                raise ConnectionClosed(str(exc)) from exc


def _decode_frame(message: dict[str, Any]) -> Any:
    """Parse a text or UTF-8 binary frame as JSON; None when it is neither."""
    raw = message.get("text")
    if raw is None:
        data = message.get("bytes")
        if data is None:
            return None
        try:
            raw = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials:
        return None
    return credentials.strip()


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    runtime: RuntimeDep,
    token: str | None = Query(None, description="JWT access token"),
) -> None:
    """Realtime chat channel.

    The credential is taken from the ``token`` query parameter or an
    ``Authorization: Bearer`` header. Rejected connections are closed before
    they are accepted.
    """
    gateway = runtime.gateway
    credential = token or _bearer_token(websocket.headers.get("authorization"))
    try:
        user_id = await gateway.authenticate(credential)
    except AuthenticationFailed as exc:
        logger.warning("Rejected realtime connection: %s", exc.message)
        await websocket.close(code=WS_CLOSE_AUTH_FAILED, reason=exc.message)
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket)
    try:
        await gateway.open(user_id, connection)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            await gateway.dispatch(user_id, connection, _decode_frame(message))
    except WebSocketDisconnect:
        logger.debug("Realtime socket for user %s closed by client", user_id)
    except ConnectionClosed:
        logger.debug("Realtime socket for user %s closed while sending", user_id)
    finally:
        gateway.close(user_id, connection)
