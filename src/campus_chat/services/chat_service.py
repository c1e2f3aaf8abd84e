"""Chat business-logic facade.

The REST endpoints and the realtime gateway both go through :class:`ChatService`,
so a message sent over either channel is persisted the same way and every
client observes the same stored state. The service never talks to live
connections; the gateway decides what to push after a call returns.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass

from campus_chat.schemas.message import MessageCreate
from campus_chat.services.cache import UnreadCountCache
from campus_chat.services.chat_store import MessageRecord, MessageStore
from campus_chat.services.conversations import Conversation, ConversationAggregator
from campus_chat.services.errors import MessageNotFound, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class ChatHistory:
    """One page of messages between two users plus pagination metadata."""

    messages: list[MessageRecord]
    total: int
    page: int
    pages: int


class ChatService:
    """Orchestrate the Message Store, the aggregator and the unread cache.

    Store calls block on storage, so each one runs in a worker thread and only
    suspends the awaiting request or realtime event.
    """

    def __init__(
        self,
        store: MessageStore,
        aggregator: ConversationAggregator,
        cache: UnreadCountCache | None = None,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.cache = cache

    async def send_message(self, sender_id: int, request: MessageCreate) -> MessageRecord:
        """Persist a new message from ``sender_id``."""
        message = await asyncio.to_thread(
            self.store.create,
            sender_id,
            request.receiver_id,
            request.content,
            request.message_type,
            request.product_id,
            request.order_id,
        )
        await self._invalidate(message.receiver_id)
        logger.info(
            "Message %s sent from user %s to user %s",
            message.id,
            message.sender_id,
            message.receiver_id,
        )
        return message

    async def get_chat_history(
        self,
        user_id: int,
        other_user_id: int,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> ChatHistory:
        """Return a page of the conversation, oldest message first."""
        if page < 1:
            raise ValidationError("Page must be a positive integer")
        if page_size < 1:
            raise ValidationError("Page size must be a positive integer")
        messages, total = await asyncio.to_thread(
            self.store.list_between, user_id, other_user_id, page, page_size
        )
        return ChatHistory(
            messages=messages,
            total=total,
            page=page,
            pages=math.ceil(total / page_size),
        )

    async def get_conversations(self, user_id: int) -> list[Conversation]:
        return await asyncio.to_thread(self.aggregator.list_conversations, user_id)

    async def mark_as_read(self, user_id: int, other_user_id: int) -> int:
        """Mark everything ``other_user_id`` sent to ``user_id`` as read."""
        count = await asyncio.to_thread(self.store.mark_read, user_id, other_user_id)
        if count:
            await self._invalidate(user_id)
        logger.debug("User %s read %d message(s) from user %s", user_id, count, other_user_id)
        return count

    async def delete_message(self, message_id: int, user_id: int) -> MessageRecord:
        """Soft-delete a message on behalf of its sender."""
        message = await asyncio.to_thread(self.store.soft_delete, message_id, user_id)
        await self._invalidate(message.receiver_id)
        logger.info("Message %s deleted by user %s", message_id, user_id)
        return message

    async def get_unread_count(self, user_id: int) -> int:
        version: int | None = None
        if self.cache is not None:
            cached = await asyncio.to_thread(self.cache.get, user_id)
            if cached is not None:
                return cached
            # Taken before the store read so a concurrent invalidation wins.
            version = await asyncio.to_thread(self.cache.version, user_id)
        count = await asyncio.to_thread(self.store.count_unread, user_id)
        if self.cache is not None and version is not None:
            await asyncio.to_thread(self.cache.set, user_id, count, version)
        return count

    async def get_message(self, message_id: int) -> MessageRecord:
        """Look a message up by id, soft-deleted or not."""
        message = await asyncio.to_thread(self.store.get, message_id)
        if message is None:
            raise MessageNotFound()
        return message

    async def _invalidate(self, *user_ids: int) -> None:
        if self.cache is not None:
            await asyncio.to_thread(self.cache.invalidate, *user_ids)
