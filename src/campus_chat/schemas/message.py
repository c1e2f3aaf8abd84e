"""Chat message Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from campus_chat.core.settings import settings
from campus_chat.models.message import MessageType


class MessageCreate(BaseModel):
    """Schema for sending a message over REST or the realtime channel."""

    receiver_id: int = Field(..., ge=1, description="Identifier of the receiving user")
    content: str = Field(
        ...,
        min_length=1,
        max_length=settings.message_max_length,
        description="Message body",
    )
    message_type: MessageType = Field(MessageType.text, description="Kind of payload")
    product_id: int | None = Field(None, ge=1, description="Optional linked product")
    order_id: int | None = Field(None, ge=1, description="Optional linked order")


class MessageResponse(BaseModel):
    """Schema for message information returned by the API."""

    id: int
    sender_id: int
    receiver_id: int
    content: str
    message_type: MessageType
    product_id: int | None
    order_id: int | None
    is_read: bool
    read_at: datetime | None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileResponse(BaseModel):
    """Minimal peer profile shown next to a conversation."""

    id: int
    username: str
    avatar_url: str | None

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    """One row of the conversation list."""

    user: UserProfileResponse
    last_message: MessageResponse = Field(serialization_alias="lastMessage")
    unread_count: int = Field(serialization_alias="unreadCount")

    model_config = ConfigDict(from_attributes=True)


class ChatHistoryResponse(BaseModel):
    """Page of chat history between two users, oldest message first."""

    messages: list[MessageResponse]
    total: int
    page: int
    pages: int

    model_config = ConfigDict(from_attributes=True)


def serialize_message(message: Any) -> dict[str, Any]:
    """Serialize a stored message into its JSON payload form."""
    return MessageResponse.model_validate(message).model_dump(mode="json")


def serialize_conversation(conversation: Any) -> dict[str, Any]:
    """Serialize a derived conversation using the public camelCase keys."""
    return ConversationResponse.model_validate(conversation).model_dump(
        mode="json", by_alias=True
    )
