"""Client-side cache that live events and REST fetches both write into.

Live events are hints; a REST fetch is authoritative and replaces what the
events built up, except for the sender's own provisional messages that the
server has not confirmed yet.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Hashable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
CacheListener = Callable[[QueryKey], None]

CONVERSATIONS_KEY: QueryKey = ("conversations",)

# how far apart a provisional and a fetched copy may be and still match
RECONCILE_WINDOW = timedelta(seconds=30)


def messages_key(conversation_id: str) -> QueryKey:
    return ("messages", str(conversation_id))


class ChatMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    conversation_id: str = Field(alias="conversationId")
    sender: int
    content: str
    created_at: datetime = Field(alias="createdAt")
    client_msg_id: str | None = Field(default=None, alias="clientMsgId")
    pending: bool = False
    failed: bool = False

    @classmethod
    def from_history(cls, data: dict[str, Any]) -> ChatMessage:
        """Build from the REST message shape (snake_case, sender_id)."""
        return cls(
            id=str(data["id"]),
            conversation_id=str(data["conversation_id"]),
            sender=int(data["sender_id"]),
            content=data["content"],
            created_at=data["created_at"],
            client_msg_id=data.get("client_msg_id"),
        )

    @classmethod
    def provisional(cls, conversation_id: str, sender: int, content: str) -> ChatMessage:
        correlation_id = str(uuid.uuid4())
        return cls(
            id=correlation_id,
            conversation_id=str(conversation_id),
            sender=sender,
            content=content,
            created_at=datetime.now(timezone.utc),
            client_msg_id=correlation_id,
            pending=True,
        )

    def matches(self, other: ChatMessage) -> bool:
        """Whether `other` is the server's copy of this provisional message."""
        if self.client_msg_id and other.client_msg_id:
            return self.client_msg_id == other.client_msg_id
        return (
            self.sender == other.sender
            and self.content == other.content
            and abs(self.created_at - other.created_at) <= RECONCILE_WINDOW
        )


class QueryCache:
    def __init__(self) -> None:
        self._data: dict[QueryKey, Any] = {}
        self._stale: set[QueryKey] = set()
        self._listeners: list[CacheListener] = []

    def get(self, key: QueryKey) -> Any:
        return self._data.get(key)

    def set(self, key: QueryKey, value: Any) -> None:
        self._data[key] = value
        self._stale.discard(key)
        self._notify(key)

    def update(self, key: QueryKey, fn: Callable[[Any], Any]) -> Any:
        value = fn(self._data.get(key))
        self._data[key] = value
        self._notify(key)
        return value

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        """Mark every key starting with `prefix` stale; returns the keys marked."""
        keys = [k for k in self._data if k[: len(prefix)] == prefix]
        if prefix not in keys:
            keys.append(prefix)
        self._stale.update(keys)
        for key in keys:
            self._notify(key)
        return keys

    def is_stale(self, key: QueryKey) -> bool:
        return key in self._stale

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, key: QueryKey) -> None:
        for listener in list(self._listeners):
            listener(key)

    # messages

    def messages(self, conversation_id: str) -> list[ChatMessage]:
        return list(self._data.get(messages_key(conversation_id)) or [])

    def append_message(self, message: ChatMessage) -> None:
        """Add a live message, replacing the provisional copy it confirms."""

        def _apply(current: list[ChatMessage] | None) -> list[ChatMessage]:
            items = list(current or [])
            if any(m.id == message.id for m in items):
                return items
            for i, existing in enumerate(items):
                if existing.pending and existing.client_msg_id and existing.client_msg_id == message.client_msg_id:
                    items[i] = message
                    return _sorted(items)
            items.append(message)
            return _sorted(items)

        self.update(messages_key(message.conversation_id), _apply)

    def add_provisional(self, message: ChatMessage) -> None:
        self.update(
            messages_key(message.conversation_id),
            lambda current: list(current or []) + [message],
        )

    def confirm_message(self, client_msg_id: str, message: ChatMessage) -> None:
        self.append_message(message.model_copy(update={"client_msg_id": client_msg_id}))

    def fail_message(self, conversation_id: str, client_msg_id: str) -> None:
        def _apply(current: list[ChatMessage] | None) -> list[ChatMessage]:
            return [
                m.model_copy(update={"pending": False, "failed": True})
                if m.pending and m.client_msg_id == client_msg_id
                else m
                for m in current or []
            ]

        self.update(messages_key(conversation_id), _apply)

    def set_messages(self, conversation_id: str, fetched: list[ChatMessage]) -> None:
        """Replace with an authoritative history, keeping unconfirmed provisionals."""
        key = messages_key(conversation_id)
        leftovers = [
            m for m in self._data.get(key) or []
            if (m.pending or m.failed) and not any(m.matches(f) for f in fetched)
        ]
        self.set(key, _sorted(list(fetched) + leftovers))


class Notification(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str
    book_id: str = Field(alias="bookId")
    requester_name: str = Field(alias="requesterName")
    conversation_id: str | None = Field(default=None, alias="conversationId")


class NotificationStore:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []
        self.has_unread = False

    def add(self, notification: Notification) -> None:
        # newest first
        self.notifications.insert(0, notification)
        self.has_unread = True

    def mark_as_read(self) -> None:
        self.has_unread = False


def _sorted(items: list[ChatMessage]) -> list[ChatMessage]:
    return sorted(items, key=lambda m: m.created_at)
