"""Chat REST endpoints for the Campus Chat API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path, Query, status

from campus_chat.core.settings import settings
from campus_chat.db.time import utcnow
from campus_chat.schemas.message import (
    ChatHistoryResponse,
    MessageCreate,
    serialize_conversation,
    serialize_message,
)

from ..dependencies import ChatServiceDep, CurrentUserIdDep, RuntimeDep, get_current_user_id

router = APIRouter(prefix="/chat", tags=["chat"])

FEATURES = [
    "send_message",
    "chat_history",
    "conversations",
    "mark_as_read",
    "delete_message",
    "unread_count",
    "realtime",
]


@router.get("/test")
async def chat_probe(runtime: RuntimeDep) -> dict[str, Any]:
    """Report that the chat module is up. Does not require authentication."""
    return {
        "status": "ok",
        "mode": runtime.backend,
        "timestamp": utcnow().isoformat(),
        "online_users": runtime.registry.count(),
        "features": FEATURES,
    }


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> dict[str, Any]:
    """Persist a message. REST sends are not pushed to live connections."""
    message = await chat_service.send_message(current_user_id, message_data)
    return serialize_message(message)


@router.get("/conversations")
async def get_conversations(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> list[dict[str, Any]]:
    """List the caller's conversations, most recently active first."""
    conversations = await chat_service.get_conversations(current_user_id)
    return [serialize_conversation(conversation) for conversation in conversations]


@router.get("/history/{other_user_id}")
async def get_chat_history(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
    other_user_id: int = Path(..., ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(
        settings.history_default_page_size,
        ge=1,
        le=settings.history_max_page_size,
    ),
) -> dict[str, Any]:
    """Get one page of messages exchanged with another user, oldest first."""
    history = await chat_service.get_chat_history(current_user_id, other_user_id, page, limit)
    return ChatHistoryResponse.model_validate(history).model_dump(mode="json")


@router.put("/read/{other_user_id}")
async def mark_as_read(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
    other_user_id: int = Path(..., ge=1),
) -> dict[str, int]:
    """Mark every message received from another user as read."""
    count = await chat_service.mark_as_read(current_user_id, other_user_id)
    return {"count": count}


@router.delete("/messages/{message_id}")
async def delete_message(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
    message_id: int = Path(..., ge=1),
) -> dict[str, Any]:
    """Soft-delete a message the caller sent."""
    message = await chat_service.delete_message(message_id, current_user_id)
    return {"status": "message_deleted", "message_id": message.id}


@router.get("/unread-count")
async def get_unread_count(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> dict[str, int]:
    count = await chat_service.get_unread_count(current_user_id)
    return {"count": count}


@router.get("/online/{user_id}", dependencies=[Depends(get_current_user_id)])
async def get_online_status(
    runtime: RuntimeDep,
    user_id: int = Path(..., ge=1),
) -> dict[str, Any]:
    """Report whether a user currently holds a live realtime connection."""
    return {"user_id": user_id, "online": runtime.registry.is_online(user_id)}
