"""SQLAlchemy model backing the user directory consulted by the chat core."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campus_chat.db.session import Base
from campus_chat.db.time import utcnow


class User(Base):
    """Marketplace account as seen by the chat subsystem.

    Only the fields needed to render a conversation partner are mapped here;
    the rest of the account lives with the user-management service.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Deactivated accounts no longer resolve in the directory.
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
