"""Realtime gateway between live connections and the chat service.

A connection goes through four states: it is *authenticated* from the
credential presented at connect time, *bound* in the registry (and told so
with a ``connected`` event), stays *active* while inbound frames are
dispatched, and is *closed* when the transport goes away.

Inbound frames are ``{"type": <event>, "data": {...}}`` objects. Failures
never terminate the session: they come back to the sender as ``error``
events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import ValidationError as PayloadValidationError

from campus_chat.schemas.message import MessageCreate, serialize_message
from campus_chat.schemas.realtime import MarkAsReadEvent, RealtimeEnvelope, TypingEvent
from campus_chat.services.chat_service import ChatService
from campus_chat.services.directory import UserDirectory
from campus_chat.services.errors import (
    AuthenticationFailed,
    ChatError,
    InternalError,
    ValidationError,
    describe_validation_errors,
)
from campus_chat.services.registry import Connection, ConnectionClosed, ConnectionRegistry

logger = logging.getLogger(__name__)

EventHandler = Callable[[int, Connection, dict[str, Any]], Awaitable[None]]


class CredentialVerifier(Protocol):
    def verify(self, token: str | None) -> int: ...


class RealtimeGateway:
    """Translate realtime events into chat service calls and push the results."""

    def __init__(
        self,
        service: ChatService,
        registry: ConnectionRegistry,
        verifier: CredentialVerifier,
        directory: UserDirectory,
    ) -> None:
        self.service = service
        self.registry = registry
        self.verifier = verifier
        self.directory = directory
        self._handlers: dict[str, EventHandler] = {
            "send_message": self._on_send_message,
            "mark_as_read": self._on_mark_as_read,
            "typing": self._on_typing,
            "stop_typing": self._on_stop_typing,
        }

    async def authenticate(self, token: str | None) -> int:
        """Resolve the connecting user's id from ``token``.

        Raises:
            AuthenticationFailed: If the token is missing or invalid, or the
                user it names does not exist.
        """
        user_id = self.verifier.verify(token)
        if not await asyncio.to_thread(self.directory.exists, user_id):
            raise AuthenticationFailed("User not found")
        return user_id

    async def open(self, user_id: int, connection: Connection) -> None:
        """Bind an authenticated connection and acknowledge it."""
        self.registry.bind(user_id, connection)
        logger.info("User %s connected (%d online)", user_id, self.registry.count())
        await connection.send("connected", {"message": "Connected", "user_id": user_id})

    def close(self, user_id: int, connection: Connection) -> None:
        """Release the binding held by ``connection``, if it still holds one."""
        if self.registry.unbind(user_id, connection):
            logger.info("User %s disconnected (%d online)", user_id, self.registry.count())
        else:
            logger.debug("Ignoring disconnect of a replaced connection for user %s", user_id)

    async def dispatch(self, user_id: int, connection: Connection, frame: Any) -> None:
        """Handle one inbound frame from ``user_id``."""
        try:
            envelope = RealtimeEnvelope.model_validate(frame)
        except PayloadValidationError:
            await self._send_error(connection, ValidationError("Malformed event frame"))
            return

        handler = self._handlers.get(envelope.type)
        if handler is None:
            await self._send_error(
                connection, ValidationError(f"Unknown event type: {envelope.type}"), envelope.type
            )
            return

        try:
            await handler(user_id, connection, envelope.data)
        except ChatError as exc:
            await self._send_error(connection, exc, envelope.type)
        except PayloadValidationError as exc:
            await self._send_error(
                connection, ValidationError(describe_validation_errors(exc.errors())), envelope.type
            )
        except ConnectionClosed:
            raise
        except Exception:
            logger.exception("Unhandled error processing %s from user %s", envelope.type, user_id)
            await self._send_error(connection, InternalError(), envelope.type)

    async def _on_send_message(self, user_id: int, connection: Connection, data: dict[str, Any]) -> None:
        request = MessageCreate.model_validate(data)
        message = await self.service.send_message(user_id, request)
        payload = serialize_message(message)
        # Receiver first: the write is committed whether or not the ack lands.
        await self._push(message.receiver_id, "new_message", payload)
        await connection.send("message_sent", payload)

    async def _on_mark_as_read(self, user_id: int, connection: Connection, data: dict[str, Any]) -> None:
        event = MarkAsReadEvent.model_validate(data)
        if event.other_user_id == user_id:
            raise ValidationError("Cannot mark your own messages as read")
        count = await self.service.mark_as_read(user_id, event.other_user_id)
        await self._push(event.other_user_id, "messages_read", {"user_id": user_id})
        await connection.send("marked_as_read", {"other_user_id": event.other_user_id, "count": count})

    async def _on_typing(self, user_id: int, connection: Connection, data: dict[str, Any]) -> None:
        event = TypingEvent.model_validate(data)
        await self._push(event.receiver_id, "user_typing", {"user_id": user_id})

    async def _on_stop_typing(self, user_id: int, connection: Connection, data: dict[str, Any]) -> None:
        event = TypingEvent.model_validate(data)
        await self._push(event.receiver_id, "user_stop_typing", {"user_id": user_id})

    async def _push(self, user_id: int, event: str, payload: dict[str, Any]) -> bool:
        """Best-effort delivery to ``user_id``'s live connection, if any."""
        target = self.registry.lookup(user_id)
        if target is None:
            return False
        try:
            await target.send(event, payload)
        except ConnectionClosed:
            logger.warning("Dropped %s for user %s: connection closed", event, user_id)
            return False
        return True

    @staticmethod
    async def _send_error(connection: Connection, error: ChatError, event: str | None = None) -> None:
        await connection.send(
            "error",
            {"message": error.message, "code": error.code, "event": event},
        )
