"""SQL-backed user directory."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from campus_chat.models.user import User
from campus_chat.services.directory import UserDirectory, UserProfile

__all__ = ["SqlUserDirectory"]


class SqlUserDirectory(UserDirectory):
    """Resolve users from the ``users`` table; inactive accounts do not resolve."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """Initialize the directory with a session factory."""
        self.session_factory = session_factory

    def exists(self, user_id: int) -> bool:
        with self.session_factory() as session:
            found = session.scalar(
                select(User.id).where(User.id == user_id, User.is_active.is_(True))
            )
        return found is not None

    def get_profiles(self, user_ids: Iterable[int]) -> dict[int, UserProfile]:
        wanted = set(user_ids)
        if not wanted:
            return {}
        with self.session_factory() as session:
            users = session.scalars(
                select(User).where(User.id.in_(wanted), User.is_active.is_(True))
            ).all()
            return {
                user.id: UserProfile(id=user.id, username=user.username, avatar_url=user.avatar_url)
                for user in users
            }

    def add(self, profile: UserProfile, *, is_active: bool = True) -> None:
        """Insert or update a user row from ``profile``."""
        with self.session_factory() as session:
            session.merge(
                User(
                    id=profile.id,
                    username=profile.username,
                    avatar_url=profile.avatar_url,
                    is_active=is_active,
                )
            )
            session.commit()
