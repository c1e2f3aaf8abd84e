"""Process wiring for the chat subsystem.

The store backend is chosen here, once per process, from configuration. Every
collaborator is constructed explicitly and handed to the components that
need it, so tests can build a fresh runtime per test.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from campus_chat.core.security import TokenVerifier
from campus_chat.core.settings import Settings, settings
from campus_chat.repositories.memory import DEMO_USERS, MemoryMessageStore, MemoryUserDirectory
from campus_chat.repositories.message_repo import SqlMessageStore
from campus_chat.repositories.user_repo import SqlUserDirectory
from campus_chat.services.cache import UnreadCountCache
from campus_chat.services.chat_service import ChatService
from campus_chat.services.chat_store import MessageStore
from campus_chat.services.conversations import ConversationAggregator
from campus_chat.services.directory import UserDirectory
from campus_chat.services.gateway import RealtimeGateway
from campus_chat.services.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ChatRuntime:
    """Everything a running process needs to serve chat traffic."""

    backend: str
    directory: UserDirectory
    store: MessageStore
    service: ChatService
    registry: ConnectionRegistry
    gateway: RealtimeGateway
    verifier: TokenVerifier
    cache: UnreadCountCache | None = None

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()


def build_chat_runtime(
    config: Settings | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    cache: UnreadCountCache | None = None,
) -> ChatRuntime:
    """Construct the chat runtime selected by ``config.chat_store_backend``."""
    config = config or settings

    directory: UserDirectory
    store: MessageStore
    if config.use_memory_store:
        directory = MemoryUserDirectory(DEMO_USERS if config.chat_seed_demo_data else ())
        store = MemoryMessageStore(
            directory,
            max_length=config.message_max_length,
            seed=config.chat_seed_demo_data,
        )
    else:
        if session_factory is None:
            from campus_chat.db.session import SessionLocal

            session_factory = SessionLocal
        directory = SqlUserDirectory(session_factory)
        store = SqlMessageStore(session_factory, directory, max_length=config.message_max_length)

    if cache is None and config.redis_url:
        cache = UnreadCountCache.from_url(config.redis_url, ttl_seconds=config.unread_cache_ttl_seconds)

    verifier = TokenVerifier(config.secret_key, config.jwt_algorithm)
    registry = ConnectionRegistry()
    service = ChatService(store, ConversationAggregator(store, directory), cache=cache)
    gateway = RealtimeGateway(service, registry, verifier, directory)

    logger.info(
        "Chat runtime ready (store=%s, unread cache=%s)",
        config.chat_store_backend,
        "redis" if cache is not None else "off",
    )
    return ChatRuntime(
        backend=config.chat_store_backend,
        directory=directory,
        store=store,
        service=service,
        registry=registry,
        gateway=gateway,
        verifier=verifier,
        cache=cache,
    )
