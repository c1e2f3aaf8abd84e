"""Realtime channel frame schemas.

Every frame, in both directions, is a JSON object ``{"type": ..., "data": {...}}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RealtimeEnvelope(BaseModel):
    """Frame exchanged over the chat WebSocket."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class MarkAsReadEvent(BaseModel):
    """Payload of an inbound ``mark_as_read`` event."""

    other_user_id: int = Field(..., ge=1)


class TypingEvent(BaseModel):
    """Payload of inbound ``typing`` and ``stop_typing`` events."""

    receiver_id: int = Field(..., ge=1)
