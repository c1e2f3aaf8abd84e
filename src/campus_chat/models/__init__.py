"""SQLAlchemy models for the Campus Chat service."""

from .message import Message, MessageType
from .user import User

__all__ = [
    "Message", "MessageType",
    "User",
]
