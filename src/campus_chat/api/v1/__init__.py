"""Version 1 API endpoints."""

from .endpoints import chat_router, realtime_router

__all__ = [
    "chat_router",
    "realtime_router",
]
