"""User directory contract consumed by the chat core.

The chat subsystem does not own user accounts. It only needs to know whether
a user exists and how to render a conversation partner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class UserProfile:
    """Minimal public profile of a user."""

    id: int
    username: str
    avatar_url: str | None = None


class UserDirectory(ABC):
    """Read-only lookup of user identities."""

    @abstractmethod
    def exists(self, user_id: int) -> bool:
        """Return True if ``user_id`` names an active user."""

    @abstractmethod
    def get_profiles(self, user_ids: Iterable[int]) -> dict[int, UserProfile]:
        """Return profiles for the users that resolve, keyed by id.

        Ids that do not resolve are simply absent from the result.
        """
