"""Business logic services for the Campus Chat application."""

from .chat_service import ChatHistory, ChatService
from .conversations import Conversation, ConversationAggregator
from .gateway import RealtimeGateway
from .registry import Connection, ConnectionClosed, ConnectionRegistry

__all__ = [
    "ChatHistory",
    "ChatService",
    "Connection",
    "ConnectionClosed",
    "ConnectionRegistry",
    "Conversation",
    "ConversationAggregator",
    "RealtimeGateway",
]
