"""Tests for the Redis unread-count cache."""

import pytest
import redis

from campus_chat.services.cache import UnreadCountCache


@pytest.fixture()
def client(mocker):
    return mocker.MagicMock(spec=redis.Redis)


@pytest.fixture()
def pipe(client, mocker):
    pipeline = mocker.MagicMock()
    client.pipeline.return_value.__enter__.return_value = pipeline
    return pipeline


def test_get_hit_and_miss(client) -> None:
    cache = UnreadCountCache(client)

    client.get.return_value = b"4"
    assert cache.get(9) == 4
    client.get.assert_called_with("chat:unread:9")

    client.get.return_value = None
    assert cache.get(9) is None


def test_version_defaults_to_zero(client) -> None:
    cache = UnreadCountCache(client)

    client.get.return_value = None
    assert cache.version(3) == 0
    client.get.assert_called_with("chat:unread:3:version")

    client.get.return_value = b"5"
    assert cache.version(3) == 5


def test_set_writes_with_ttl_when_version_current(client, pipe) -> None:
    pipe.get.return_value = b"2"

    assert UnreadCountCache(client, ttl_seconds=30).set(2, 5, version=2) is True

    pipe.watch.assert_called_once_with("chat:unread:2:version")
    pipe.multi.assert_called_once()
    pipe.set.assert_called_once_with("chat:unread:2", 5, ex=30)
    pipe.execute.assert_called_once()


def test_set_skips_when_invalidated_since_version_read(client, pipe) -> None:
    pipe.get.return_value = b"3"

    assert UnreadCountCache(client).set(2, 0, version=2) is False

    pipe.set.assert_not_called()
    pipe.execute.assert_not_called()


def test_set_skips_when_invalidated_during_write(client, pipe) -> None:
    pipe.get.return_value = None
    pipe.execute.side_effect = redis.WatchError("version changed")

    assert UnreadCountCache(client).set(2, 0, version=0) is False


def test_invalidate_bumps_versions_and_deletes(client, pipe) -> None:
    UnreadCountCache(client).invalidate(1, 2)

    assert [c.args for c in pipe.incr.call_args_list] == [("chat:unread:1:version",), ("chat:unread:2:version",)]
    assert [c.args for c in pipe.delete.call_args_list] == [("chat:unread:1",), ("chat:unread:2",)]
    pipe.execute.assert_called_once()


def test_invalidate_nothing(client) -> None:
    UnreadCountCache(client).invalidate()
    client.pipeline.assert_not_called()


def test_redis_errors_degrade_to_miss(client, pipe, caplog) -> None:
    client.get.side_effect = redis.ConnectionError("refused")
    pipe.watch.side_effect = redis.ConnectionError("refused")
    pipe.execute.side_effect = redis.ConnectionError("refused")
    cache = UnreadCountCache(client)

    assert cache.get(1) is None
    assert cache.version(1) is None
    assert cache.set(1, 3, version=0) is False
    cache.invalidate(1)

    assert "Unread cache read failed" in caplog.text
    assert "Unread cache write failed" in caplog.text
    assert "Unread cache invalidation failed" in caplog.text


def test_from_url(mocker) -> None:
    from_url = mocker.patch("campus_chat.services.cache.redis.Redis.from_url")

    cache = UnreadCountCache.from_url("redis://localhost:6379/0", ttl_seconds=12)

    from_url.assert_called_once_with("redis://localhost:6379/0")
    assert cache.ttl_seconds == 12
