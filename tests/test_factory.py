# tests/test_factory.py
"""Tests for runtime wiring."""

from unittest.mock import MagicMock

from campus_chat.repositories.memory import MemoryMessageStore
from campus_chat.repositories.message_repo import SqlMessageStore
from campus_chat.services.cache import UnreadCountCache
from campus_chat.services.factory import build_chat_runtime


def test_memory_backend_with_demo_data(test_settings) -> None:
    config = test_settings.model_copy(
        update={"chat_store_backend": "memory", "chat_seed_demo_data": True, "redis_url": None}
    )
    runtime = build_chat_runtime(config)

    assert runtime.backend == "memory"
    assert isinstance(runtime.store, MemoryMessageStore)
    assert runtime.directory.exists(1)
    assert runtime.store.count_unread(1) == 1
    assert runtime.cache is None
    assert runtime.gateway.registry is runtime.registry


def test_sql_backend_uses_given_session_factory(test_settings, session_factory, sql_directory) -> None:
    config = test_settings.model_copy(update={"chat_store_backend": "sql", "redis_url": None})
    runtime = build_chat_runtime(config, session_factory=session_factory)

    assert isinstance(runtime.store, SqlMessageStore)
    message = runtime.store.create(1, 2, "hello")
    assert runtime.store.get(message.id) == message


def test_redis_url_enables_cache(test_settings, mocker) -> None:
    from_url = mocker.patch.object(UnreadCountCache, "from_url", return_value=MagicMock(spec=UnreadCountCache))
    config = test_settings.model_copy(
        update={"chat_store_backend": "memory", "redis_url": "redis://cache:6379/0", "unread_cache_ttl_seconds": 60}
    )

    runtime = build_chat_runtime(config)

    from_url.assert_called_once_with("redis://cache:6379/0", ttl_seconds=60)
    assert runtime.service.cache is runtime.cache
    runtime.close()
    runtime.cache.close.assert_called_once()
