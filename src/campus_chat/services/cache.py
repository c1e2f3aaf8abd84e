"""Redis-backed cache of per-user unread message counts."""

from __future__ import annotations

import logging

import redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "chat:unread"


class UnreadCountCache:
    """Cache unread counts in Redis with a TTL.

    Every invalidation bumps a per-user version. A count computed from the
    store is written back only if the version it was read under is still
    current, so a write that commits while the count is being recomputed
    cannot be masked by a stale entry.

    Redis failures never fail a request: reads report a miss and writes are
    skipped, both with a warning, and the caller falls back to the store.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int = 300) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 300) -> UnreadCountCache:
        """Build a cache connected to the Redis server at ``url``."""
        return cls(redis.Redis.from_url(url), ttl_seconds=ttl_seconds)

    @staticmethod
    def _key(user_id: int) -> str:
        return f"{_KEY_PREFIX}:{user_id}"

    @staticmethod
    def _version_key(user_id: int) -> str:
        return f"{_KEY_PREFIX}:{user_id}:version"

    def get(self, user_id: int) -> int | None:
        """Return the cached count, or None on a miss."""
        try:
            value = self._redis.get(self._key(user_id))
        except redis.RedisError as exc:
            logger.warning("Unread cache read failed for user %s: %s", user_id, exc)
            return None
        if value is None:
            return None
        return int(value)

    def version(self, user_id: int) -> int | None:
        """Return the user's invalidation version, or None if Redis is unavailable.

        Read it before computing the count that will be passed to :meth:`set`.
        """
        try:
            value = self._redis.get(self._version_key(user_id))
        except redis.RedisError as exc:
            logger.warning("Unread cache version read failed for user %s: %s", user_id, exc)
            return None
        return int(value) if value is not None else 0

    def set(self, user_id: int, count: int, version: int) -> bool:
        """Store ``count`` unless the user was invalidated since ``version`` was read.

        Returns True when the count was written.
        """
        version_key = self._version_key(user_id)
        try:
            with self._redis.pipeline() as pipe:
                pipe.watch(version_key)
                current = pipe.get(version_key)
                if (int(current) if current is not None else 0) != version:
                    logger.debug("Skipping stale unread count for user %s", user_id)
                    return False
                pipe.multi()
                pipe.set(self._key(user_id), count, ex=self.ttl_seconds)
                pipe.execute()
        except redis.WatchError:
            logger.debug("Unread count for user %s invalidated while caching", user_id)
            return False
        except redis.RedisError as exc:
            logger.warning("Unread cache write failed for user %s: %s", user_id, exc)
            return False
        return True

    def invalidate(self, *user_ids: int) -> None:
        """Drop cached counts for ``user_ids`` and bump their versions."""
        if not user_ids:
            return
        try:
            with self._redis.pipeline() as pipe:
                for user_id in user_ids:
                    pipe.incr(self._version_key(user_id))
                    pipe.delete(self._key(user_id))
                pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Unread cache invalidation failed for users %s: %s", user_ids, exc)

    def close(self) -> None:
        self._redis.close()
