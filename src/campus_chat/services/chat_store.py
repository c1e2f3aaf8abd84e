"""Message Store contract shared by the persistent and in-memory backends.

The store is the only component that mutates messages. Input validation for
new messages lives here so both backends enforce identical rules; the
backends only implement the storage primitives.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from campus_chat.models.message import MessageType
from campus_chat.services.directory import UserDirectory
from campus_chat.services.errors import (
    InvalidContent,
    InvalidSelfMessage,
    ReceiverNotFound,
    ValidationError,
)

MESSAGE_MAX_LENGTH = 5000


@dataclass(frozen=True)
class MessageRecord:
    """Snapshot of a stored message, independent of the storage backend."""

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

    @property
    def sort_key(self) -> tuple[datetime, int]:
        """Ordering key: creation time, ties broken by insertion order."""
        return (self.created_at, self.id)

    def peer_of(self, user_id: int) -> int:
        """Return the other participant relative to ``user_id``."""
        return self.receiver_id if self.sender_id == user_id else self.sender_id


class MessageStore(ABC):
    """Durable, ordered log of point-to-point messages."""

    def __init__(self, directory: UserDirectory, *, max_length: int = MESSAGE_MAX_LENGTH) -> None:
        self.directory = directory
        self.max_length = max_length

    def create(
        self,
        sender_id: int,
        receiver_id: int,
        content: str,
        message_type: MessageType | str = MessageType.text,
        product_id: int | None = None,
        order_id: int | None = None,
    ) -> MessageRecord:
        """Validate and persist a new unread message.

        Raises:
            InvalidSelfMessage: If sender and receiver are the same user.
            InvalidContent: If the content is blank or longer than the bound.
            ValidationError: If ``message_type`` is unknown.
            ReceiverNotFound: If the receiver does not resolve in the directory.
        """
        if sender_id == receiver_id:
            raise InvalidSelfMessage()
        if not content or not content.strip():
            raise InvalidContent("Message content cannot be empty")
        if len(content) > self.max_length:
            raise InvalidContent(f"Message content cannot exceed {self.max_length} characters")
        try:
            kind = MessageType(message_type)
        except ValueError as err:
            raise ValidationError(f"Unknown message type: {message_type}") from err
        if not self.directory.exists(receiver_id):
            raise ReceiverNotFound()

        return self._insert(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type=kind,
            product_id=product_id,
            order_id=order_id,
        )

    @abstractmethod
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
        """Persist an already validated message."""

    @abstractmethod
    def get(self, message_id: int) -> MessageRecord | None:
        """Return a message by id, including soft-deleted rows."""

    @abstractmethod
    def list_between(
        self, user_a: int, user_b: int, page: int, page_size: int
    ) -> tuple[list[MessageRecord], int]:
        """Return one page of the pair's visible messages, oldest first, and the total."""

    @abstractmethod
    def list_for_user(self, user_id: int) -> list[MessageRecord]:
        """Return every visible message sent or received by ``user_id``, newest first."""

    @abstractmethod
    def mark_read(self, receiver_id: int, sender_id: int) -> int:
        """Mark unread messages from ``sender_id`` to ``receiver_id`` read; return the count."""

    @abstractmethod
    def soft_delete(self, message_id: int, requester_id: int) -> MessageRecord:
        """Hide a message on behalf of its sender.

        Raises:
            MessageNotFound: If no message has ``message_id``.
            Forbidden: If ``requester_id`` is not the sender.
        """

    @abstractmethod
    def count_unread(self, user_id: int) -> int:
        """Return the number of visible unread messages addressed to ``user_id``."""
