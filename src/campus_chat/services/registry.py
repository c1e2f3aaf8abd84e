"""Process-local registry of live realtime connections."""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ConnectionClosed(Exception):
    """Raised by a connection handle when its transport is gone."""


class Connection(Protocol):
    """Transport-independent handle to one realtime client."""

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        """Push ``event`` with ``payload`` to the client.

        Raises:
            ConnectionClosed: If the underlying transport is closed.
        """
        ...


class ConnectionRegistry:
    """Map each user id to at most one live connection handle.

    Methods never suspend, so under asyncio each call is atomic with respect
    to other connections' events. Handles are compared by identity.
    """

    def __init__(self) -> None:
        self._connections: dict[int, Connection] = {}

    def bind(self, user_id: int, connection: Connection) -> Connection | None:
        """Bind ``connection`` to ``user_id``; return the handle it replaced, if any.

        The replaced handle is not closed.
        """
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info("User %s rebound to a new connection", user_id)
            return previous
        return None

    def unbind(self, user_id: int, connection: Connection) -> bool:
        """Remove the binding only if ``connection`` is the one currently bound.

        A late disconnect from a replaced handle must not evict the newer
        binding for the same user. Returns True when a binding was removed.
        """
        if self._connections.get(user_id) is not connection:
            return False
        del self._connections[user_id]
        return True

    def lookup(self, user_id: int) -> Connection | None:
        return self._connections.get(user_id)

    def is_online(self, user_id: int) -> bool:
        return user_id in self._connections

    def count(self) -> int:
        """Return the number of currently bound users."""
        return len(self._connections)
