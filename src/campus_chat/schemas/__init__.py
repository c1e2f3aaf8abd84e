"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .message import (
    ChatHistoryResponse,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    UserProfileResponse,
)
from .realtime import MarkAsReadEvent, RealtimeEnvelope, TypingEvent

__all__ = [
    "ChatHistoryResponse", "ConversationResponse",
    "MessageCreate", "MessageResponse", "UserProfileResponse",
    "MarkAsReadEvent", "RealtimeEnvelope", "TypingEvent",
]
