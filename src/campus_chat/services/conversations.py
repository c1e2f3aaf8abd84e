"""Conversation list derived from the flat message log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from campus_chat.services.chat_store import MessageRecord, MessageStore
from campus_chat.services.directory import UserDirectory, UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conversation:
    """Per-peer summary as seen by one viewer. Never persisted."""

    user: UserProfile
    last_message: MessageRecord
    unread_count: int


@dataclass
class _PeerAccumulator:
    last_message: MessageRecord
    unread_count: int = field(default=0)


class ConversationAggregator:
    """Build a viewer's conversation list in a single pass over their messages."""

    def __init__(self, store: MessageStore, directory: UserDirectory) -> None:
        self.store = store
        self.directory = directory

    def list_conversations(self, user_id: int) -> list[Conversation]:
        """Return one conversation per peer, most recently active first.

        Peers whose profile no longer resolves (for example a deactivated
        account) are left out of the result.
        """
        peers: dict[int, _PeerAccumulator] = {}
        for message in self.store.list_for_user(user_id):
            peer_id = message.peer_of(user_id)
            acc = peers.get(peer_id)
            if acc is None:
                acc = peers[peer_id] = _PeerAccumulator(last_message=message)
            elif message.sort_key > acc.last_message.sort_key:
                acc.last_message = message
            if message.receiver_id == user_id and not message.is_read:
                acc.unread_count += 1

        profiles = self.directory.get_profiles(peers)

        conversations: list[Conversation] = []
        for peer_id, acc in peers.items():
            profile = profiles.get(peer_id)
            if profile is None:
                logger.debug("Skipping conversation of user %s with unresolved peer %s", user_id, peer_id)
                continue
            conversations.append(
                Conversation(user=profile, last_message=acc.last_message, unread_count=acc.unread_count)
            )

        conversations.sort(key=lambda conv: conv.last_message.sort_key, reverse=True)
        return conversations
