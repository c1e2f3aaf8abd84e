"""Tests for the async chat service facade."""

from unittest.mock import MagicMock

import pytest

from campus_chat.schemas.message import MessageCreate
from campus_chat.services.cache import UnreadCountCache
from campus_chat.services.chat_service import ChatService
from campus_chat.services.conversations import ConversationAggregator
from campus_chat.services.errors import (
    Forbidden,
    InvalidSelfMessage,
    MessageNotFound,
    ReceiverNotFound,
    ValidationError,
)


@pytest.fixture()
def service(memory_store, memory_directory) -> ChatService:
    return ChatService(memory_store, ConversationAggregator(memory_store, memory_directory))


@pytest.fixture()
def cache() -> MagicMock:
    mock = MagicMock(spec=UnreadCountCache)
    mock.get.return_value = None
    mock.version.return_value = 0
    return mock


@pytest.fixture()
def cached_service(memory_store, memory_directory, cache) -> ChatService:
    return ChatService(memory_store, ConversationAggregator(memory_store, memory_directory), cache=cache)


def _request(receiver_id: int = 2, content: str = "Is this still available?", **extra) -> MessageCreate:
    return MessageCreate(receiver_id=receiver_id, content=content, **extra)


@pytest.mark.asyncio
async def test_send_message_persists(service: ChatService) -> None:
    message = await service.send_message(1, _request(product_id=5, order_id=9))

    assert message.sender_id == 1
    assert message.product_id == 5
    assert message.order_id == 9
    assert await service.get_unread_count(2) == 1
    assert await service.get_message(message.id) == message


@pytest.mark.asyncio
async def test_send_message_to_self(service: ChatService) -> None:
    with pytest.raises(InvalidSelfMessage):
        await service.send_message(1, _request(receiver_id=1))


@pytest.mark.asyncio
async def test_send_message_to_unknown_user(service: ChatService) -> None:
    with pytest.raises(ReceiverNotFound):
        await service.send_message(1, _request(receiver_id=500))


@pytest.mark.asyncio
async def test_history_pagination(service: ChatService) -> None:
    for i in range(5):
        await service.send_message(1, _request(content=f"m{i}"))

    history = await service.get_chat_history(2, 1, page=1, page_size=2)
    assert [m.content for m in history.messages] == ["m3", "m4"]
    assert (history.total, history.page, history.pages) == (5, 1, 3)

    beyond = await service.get_chat_history(2, 1, page=9, page_size=2)
    assert beyond.messages == []
    assert beyond.pages == 3


@pytest.mark.asyncio
async def test_empty_history_has_zero_pages(service: ChatService) -> None:
    history = await service.get_chat_history(1, 3)
    assert history.messages == []
    assert history.total == 0
    assert history.pages == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, 0), (-1, 5)])
async def test_history_rejects_bad_paging(service: ChatService, page: int, page_size: int) -> None:
    with pytest.raises(ValidationError):
        await service.get_chat_history(1, 2, page=page, page_size=page_size)


@pytest.mark.asyncio
async def test_mark_as_read_twice(service: ChatService) -> None:
    await service.send_message(2, _request(receiver_id=1, content="a"))
    await service.send_message(2, _request(receiver_id=1, content="b"))

    assert await service.mark_as_read(1, 2) == 2
    assert await service.mark_as_read(1, 2) == 0
    assert await service.get_unread_count(1) == 0


@pytest.mark.asyncio
async def test_delete_requires_ownership(service: ChatService) -> None:
    message = await service.send_message(1, _request())

    with pytest.raises(Forbidden):
        await service.delete_message(message.id, 2)

    deleted = await service.delete_message(message.id, 1)
    assert deleted.is_deleted
    history = await service.get_chat_history(1, 2)
    assert history.total == 0


@pytest.mark.asyncio
async def test_delete_unknown_message(service: ChatService) -> None:
    with pytest.raises(MessageNotFound):
        await service.delete_message(321, 1)


@pytest.mark.asyncio
async def test_get_unknown_message(service: ChatService) -> None:
    with pytest.raises(MessageNotFound):
        await service.get_message(321)


@pytest.mark.asyncio
async def test_conversations(service: ChatService) -> None:
    await service.send_message(2, _request(receiver_id=1, content="from lisi"))
    await service.send_message(3, _request(receiver_id=1, content="from wangwu"))

    conversations = await service.get_conversations(1)
    assert [c.user.username for c in conversations] == ["wangwu", "lisi"]


@pytest.mark.asyncio
async def test_unread_count_uses_cache_hit(cached_service: ChatService, cache: MagicMock) -> None:
    cache.get.return_value = 7

    assert await cached_service.get_unread_count(1) == 7
    cache.set.assert_not_called()


@pytest.mark.asyncio
async def test_unread_count_fills_cache_on_miss(cached_service: ChatService, cache: MagicMock) -> None:
    await cached_service.send_message(2, _request(receiver_id=1))

    assert await cached_service.get_unread_count(1) == 1
    cache.set.assert_called_once_with(1, 1, 0)


@pytest.mark.asyncio
async def test_writes_invalidate_cached_counts(cached_service: ChatService, cache: MagicMock) -> None:
    message = await cached_service.send_message(2, _request(receiver_id=1))
    cache.invalidate.assert_called_with(1)

    cache.invalidate.reset_mock()
    assert await cached_service.mark_as_read(1, 2) == 1
    cache.invalidate.assert_called_once_with(1)

    cache.invalidate.reset_mock()
    assert await cached_service.mark_as_read(1, 2) == 0
    cache.invalidate.assert_not_called()

    await cached_service.delete_message(message.id, 2)
    cache.invalidate.assert_called_once_with(1)


class VersionedCache:
    """Dict-backed stand-in honouring the cache's version contract."""

    def __init__(self) -> None:
        self.counts: dict[int, int] = {}
        self.versions: dict[int, int] = {}

    def get(self, user_id: int) -> int | None:
        return self.counts.get(user_id)

    def version(self, user_id: int) -> int:
        return self.versions.get(user_id, 0)

    def set(self, user_id: int, count: int, version: int) -> bool:
        if self.versions.get(user_id, 0) != version:
            return False
        self.counts[user_id] = count
        return True

    def invalidate(self, *user_ids: int) -> None:
        for user_id in user_ids:
            self.versions[user_id] = self.versions.get(user_id, 0) + 1
            self.counts.pop(user_id, None)


@pytest.mark.asyncio
async def test_send_during_unread_recount_is_not_masked(memory_store, memory_directory, mocker) -> None:
    cache = VersionedCache()
    service = ChatService(memory_store, ConversationAggregator(memory_store, memory_directory), cache=cache)
    count_unread = memory_store.count_unread
    raced = []

    def count_then_race(user_id: int) -> int:
        count = count_unread(user_id)
        if not raced:
            raced.append(True)
            # A send commits and invalidates after the count was read.
            memory_store.create(1, user_id, "sent mid-recount")
            cache.invalidate(user_id)
        return count

    mocker.patch.object(memory_store, "count_unread", side_effect=count_then_race)

    assert await service.get_unread_count(2) == 0
    assert cache.get(2) is None

    assert await service.get_unread_count(2) == 1
    assert cache.get(2) == 1


@pytest.mark.asyncio
async def test_unread_count_skips_cache_write_without_version(
    cached_service: ChatService, cache: MagicMock
) -> None:
    cache.version.return_value = None

    assert await cached_service.get_unread_count(1) == 0
    cache.set.assert_not_called()
