"""In-memory user directory and Message Store.

Used for local development without a database and as a fast fixture backend
in tests. State lives in the process and is guarded by a lock because store
calls run on worker threads.
"""
from __future__ import annotations

import itertools
from collections.abc import Iterable
from dataclasses import replace
from datetime import timedelta
from threading import Lock

from campus_chat.db.time import utcnow
from campus_chat.models.message import MessageType
from campus_chat.services.chat_store import MESSAGE_MAX_LENGTH, MessageRecord, MessageStore
from campus_chat.services.directory import UserDirectory, UserProfile
from campus_chat.services.errors import Forbidden, MessageNotFound

__all__ = ["DEMO_USERS", "MemoryMessageStore", "MemoryUserDirectory"]

DEMO_USERS: tuple[UserProfile, ...] = (
    UserProfile(id=1, username="zhangsan", avatar_url="https://i.pravatar.cc/150?img=1"),
    UserProfile(id=2, username="lisi", avatar_url="https://i.pravatar.cc/150?img=2"),
    UserProfile(id=3, username="wangwu", avatar_url="https://i.pravatar.cc/150?img=3"),
)


class MemoryUserDirectory(UserDirectory):
    """Directory backed by a plain dictionary of profiles."""

    def __init__(self, profiles: Iterable[UserProfile] = ()) -> None:
        self._profiles = {profile.id: profile for profile in profiles}
        self._lock = Lock()

    def add(self, profile: UserProfile) -> None:
        with self._lock:
            self._profiles[profile.id] = profile

    def remove(self, user_id: int) -> None:
        """Forget a user, as if the account had been deactivated."""
        with self._lock:
            self._profiles.pop(user_id, None)

    def exists(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._profiles

    def get_profiles(self, user_ids: Iterable[int]) -> dict[int, UserProfile]:
        with self._lock:
            return {
                user_id: self._profiles[user_id]
                for user_id in set(user_ids)
                if user_id in self._profiles
            }


class MemoryMessageStore(MessageStore):
    """Message Store keeping every message in an insertion-ordered dict."""

    def __init__(
        self,
        directory: UserDirectory,
        *,
        max_length: int = MESSAGE_MAX_LENGTH,
        seed: bool = False,
    ) -> None:
        super().__init__(directory, max_length=max_length)
        self._messages: dict[int, MessageRecord] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()
        if seed:
            self._seed_demo_conversation()

    def _seed_demo_conversation(self) -> None:
        """Load a short marketplace exchange between the demo users."""
        now = utcnow()
        samples = [
            # (sender, receiver, content, age, read after)
            (1, 2, "Hi, is this item still available?", timedelta(hours=2), timedelta(hours=1)),
            (2, 1, "Yes it is, are you interested?", timedelta(hours=1), timedelta(minutes=58)),
            (1, 2, "Could you lower the price a little?", timedelta(minutes=30), None),
            (3, 1, "Hello", timedelta(minutes=15), None),
        ]
        for sender_id, receiver_id, content, age, read_age in samples:
            created_at = now - age
            message_id = next(self._ids)
            self._messages[message_id] = MessageRecord(
                id=message_id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                message_type=MessageType.text,
                product_id=None,
                order_id=None,
                is_read=read_age is not None,
                read_at=now - read_age if read_age is not None else None,
                is_deleted=False,
                created_at=created_at,
                updated_at=created_at,
            )

    def _insert(
        self,
        *,
        sender_id: int,
        receiver_id: int,
        content: str,
        message_type: MessageType,
        product_id: int | None,
        order_id: int | None,
    ) -> MessageRecord:
        now = utcnow()
        with self._lock:
            message_id = next(self._ids)
            record = MessageRecord(
                id=message_id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                message_type=message_type,
                product_id=product_id,
                order_id=order_id,
                is_read=False,
                read_at=None,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            self._messages[message_id] = record
        return record

    def get(self, message_id: int) -> MessageRecord | None:
        with self._lock:
            return self._messages.get(message_id)

    def list_between(
        self, user_a: int, user_b: int, page: int, page_size: int
    ) -> tuple[list[MessageRecord], int]:
        pair = {user_a, user_b}
        with self._lock:
            matching = [
                message
                for message in self._messages.values()
                if not message.is_deleted and {message.sender_id, message.receiver_id} == pair
            ]
        matching.sort(key=lambda message: message.sort_key, reverse=True)
        start = (page - 1) * page_size
        page_items = matching[start:start + page_size]
        page_items.reverse()
        return page_items, len(matching)

    def list_for_user(self, user_id: int) -> list[MessageRecord]:
        with self._lock:
            matching = [
                message
                for message in self._messages.values()
                if not message.is_deleted and user_id in (message.sender_id, message.receiver_id)
            ]
        matching.sort(key=lambda message: message.sort_key, reverse=True)
        return matching

    def mark_read(self, receiver_id: int, sender_id: int) -> int:
        now = utcnow()
        affected = 0
        with self._lock:
            for message_id, message in self._messages.items():
                if (
                    message.receiver_id == receiver_id
                    and message.sender_id == sender_id
                    and not message.is_read
                    and not message.is_deleted
                ):
                    self._messages[message_id] = replace(
                        message, is_read=True, read_at=now, updated_at=now
                    )
                    affected += 1
        return affected

    def soft_delete(self, message_id: int, requester_id: int) -> MessageRecord:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None:
                raise MessageNotFound()
            if message.sender_id != requester_id:
                raise Forbidden()
            if not message.is_deleted:
                message = replace(message, is_deleted=True, updated_at=utcnow())
                self._messages[message_id] = message
            return message

    def count_unread(self, user_id: int) -> int:
        with self._lock:
            return sum(
                1
                for message in self._messages.values()
                if message.receiver_id == user_id and not message.is_read and not message.is_deleted
            )
