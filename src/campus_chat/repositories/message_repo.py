"""Relational Message Store built on SQLAlchemy."""
from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from campus_chat.db.time import utcnow
from campus_chat.models.message import Message, MessageType
from campus_chat.services.chat_store import MESSAGE_MAX_LENGTH, MessageRecord, MessageStore
from campus_chat.services.directory import UserDirectory
from campus_chat.services.errors import Forbidden, MessageNotFound

__all__ = ["SqlMessageStore"]


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back out.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_record(message: Message) -> MessageRecord:
    return MessageRecord(
        id=message.id,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        content=message.content,
        message_type=MessageType(message.message_type),
        product_id=message.product_id,
        order_id=message.order_id,
        is_read=message.is_read,
        read_at=_as_utc(message.read_at),
        is_deleted=message.is_deleted,
        created_at=_as_utc(message.created_at),
        updated_at=_as_utc(message.updated_at),
    )


class SqlMessageStore(MessageStore):
    """Message Store persisting to the ``messages`` table.

    Each operation runs in its own short-lived session so concurrent callers
    never share ORM state.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        directory: UserDirectory,
        *,
        max_length: int = MESSAGE_MAX_LENGTH,
    ) -> None:
        """Initialize the store with a session factory and the user directory."""
        super().__init__(directory, max_length=max_length)
        self.session_factory = session_factory

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
        message = Message(
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
        with self.session_factory() as session:
            session.add(message)
            session.flush()
            record = _to_record(message)
            session.commit()
        return record

    def get(self, message_id: int) -> MessageRecord | None:
        with self.session_factory() as session:
            message = session.get(Message, message_id)
            return _to_record(message) if message is not None else None

    def list_between(
        self, user_a: int, user_b: int, page: int, page_size: int
    ) -> tuple[list[MessageRecord], int]:
        visible = and_(
            or_(
                and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                and_(Message.sender_id == user_b, Message.receiver_id == user_a),
            ),
            Message.is_deleted.is_(False),
        )
        with self.session_factory() as session:
            total = session.scalar(select(func.count()).select_from(Message).where(visible)) or 0
            rows = session.scalars(
                select(Message)
                .where(visible)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            # Newest-first for paging, oldest-first for display.
            return [_to_record(row) for row in reversed(rows)], int(total)

    def list_for_user(self, user_id: int) -> list[MessageRecord]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(Message)
                .where(
                    or_(Message.sender_id == user_id, Message.receiver_id == user_id),
                    Message.is_deleted.is_(False),
                )
                .order_by(Message.created_at.desc(), Message.id.desc())
            ).all()
            return [_to_record(row) for row in rows]

    def mark_read(self, receiver_id: int, sender_id: int) -> int:
        now = utcnow()
        stmt = (
            update(Message)
            .where(
                Message.receiver_id == receiver_id,
                Message.sender_id == sender_id,
                Message.is_read.is_(False),
                Message.is_deleted.is_(False),
            )
            .values(is_read=True, read_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        with self.session_factory() as session:
            affected = session.execute(stmt).rowcount
            session.commit()
        return int(affected or 0)

    def soft_delete(self, message_id: int, requester_id: int) -> MessageRecord:
        with self.session_factory() as session:
            message = session.get(Message, message_id)
            if message is None:
                raise MessageNotFound()
            if message.sender_id != requester_id:
                raise Forbidden()
            if not message.is_deleted:
                message.is_deleted = True
                message.updated_at = utcnow()
                session.commit()
            return _to_record(message)

    def count_unread(self, user_id: int) -> int:
        with self.session_factory() as session:
            count = session.scalar(
                select(func.count())
                .select_from(Message)
                .where(
                    Message.receiver_id == user_id,
                    Message.is_read.is_(False),
                    Message.is_deleted.is_(False),
                )
            )
        return int(count or 0)
