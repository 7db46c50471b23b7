"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator
from uuid import UUID

import pytest

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import ConflictError, NotFoundError
from exchange_chat.domain.entities.book import Book
from exchange_chat.domain.entities.conversation import Conversation, participant_pair
from exchange_chat.domain.entities.exchange_request import ExchangeRequest
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.value_objects.enums import BookStatus, RequestStatus

LISTER_ID = 1
REQUESTER_ID = 2


@pytest.fixture
def lister_principal() -> Principal:
    return Principal(subject_id=LISTER_ID, name="Lena")


@pytest.fixture
def requester_principal() -> Principal:
    return Principal(subject_id=REQUESTER_ID, name="Rick")


def make_book(
    *,
    book_id: UUID | None = None,
    title: str = "Dune",
    lister_id: int = LISTER_ID,
    status: str = BookStatus.AVAILABLE,
) -> Book:
    return Book(
        id=book_id or uuid.uuid4(),
        title=title,
        lister_id=lister_id,
        status=status,
        created_at=datetime.now(timezone.utc),
    )


def make_conversation(
    *,
    conversation_id: UUID | None = None,
    book_id: UUID | None = None,
    participants: tuple[int, int] = (LISTER_ID, REQUESTER_ID),
    updated_at: datetime | None = None,
) -> Conversation:
    now = datetime.now(timezone.utc)
    low, high = participant_pair(*participants)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        book_id=book_id or uuid.uuid4(),
        participant_low=low,
        participant_high=high,
        created_at=now,
        updated_at=updated_at or now,
    )


def make_message(
    *,
    conversation_id: UUID | None = None,
    sender_id: int = REQUESTER_ID,
    content: str = "hello",
    client_msg_id: UUID | None = None,
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id or uuid.uuid4(),
        sender_id=sender_id,
        content=content,
        client_msg_id=client_msg_id,
        created_at=created_at or datetime.now(timezone.utc),
    )


def make_request(
    *,
    book_id: UUID,
    requester_id: int = REQUESTER_ID,
    status: str = RequestStatus.PENDING,
    message: str = "",
    age: timedelta = timedelta(0),
) -> ExchangeRequest:
    ts = datetime.now(timezone.utc) - age
    return ExchangeRequest(
        id=uuid.uuid4(),
        requester_id=requester_id,
        book_id=book_id,
        status=status,
        message=message,
        created_at=ts,
        updated_at=ts,
    )


@dataclass
class FakeBookReader:
    _store: dict[UUID, Book] = field(default_factory=dict)

    async def get_by_id(self, book_id: UUID) -> Book | None:
        return self._store.get(book_id)

    async def list_ids_for_lister(self, lister_id: int) -> list[UUID]:
        return [b.id for b in self._store.values() if b.lister_id == lister_id]


@dataclass
class FakeBookWriter:
    _reader: FakeBookReader

    async def set_status(self, book_id: UUID, status: str) -> None:
        book = self._reader._store[book_id]
        self._reader._store[book_id] = dataclasses.replace(book, status=status)


@dataclass
class FakeExchangeRequestReader:
    _store: dict[UUID, ExchangeRequest] = field(default_factory=dict)

    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None:
        return self._store.get(request_id)

    async def find_active(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None:
        for r in self._store.values():
            if r.book_id == book_id and r.requester_id == requester_id and r.status in RequestStatus.active():
                return r
        return None

    async def latest_for(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None:
        matching = [r for r in self._store.values() if r.book_id == book_id and r.requester_id == requester_id]
        return max(matching, key=lambda r: r.created_at, default=None)

    async def list_for_books(self, book_ids: list[UUID]) -> list[ExchangeRequest]:
        found = [r for r in self._store.values() if r.book_id in book_ids]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def list_for_requester(self, requester_id: int) -> list[ExchangeRequest]:
        found = [r for r in self._store.values() if r.requester_id == requester_id]
        return sorted(found, key=lambda r: r.created_at, reverse=True)


@dataclass
class FakeExchangeRequestWriter:
    _reader: FakeExchangeRequestReader

    async def create(self, request: ExchangeRequest) -> ExchangeRequest:
        if await self._reader.find_active(request.book_id, request.requester_id) is not None:
            raise ConflictError("You already have an active request for this book")
        self._reader._store[request.id] = request
        return request

    async def set_status(self, request_id: UUID, status: str) -> ExchangeRequest:
        request = self._reader._store.get(request_id)
        if request is None:
            raise NotFoundError("Request not found")
        updated = dataclasses.replace(request, status=status, updated_at=datetime.now(timezone.utc))
        self._reader._store[request_id] = updated
        return updated


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def find_for_pair(self, book_id: UUID, participant_low: int, participant_high: int) -> Conversation | None:
        for c in self._store.values():
            if c.book_id == book_id and c.participants == (participant_low, participant_high):
                return c
        return None

    async def list_for_user(self, user_id: int, *, limit: int = 50) -> list[Conversation]:
        found = [c for c in self._store.values() if c.has_participant(user_id)]
        return sorted(found, key=lambda c: c.updated_at, reverse=True)[:limit]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    _touched: list[UUID] = field(default_factory=list)

    async def create_if_not_exists(self, conversation: Conversation) -> tuple[Conversation, bool]:
        # check and insert with no await in between, like a unique-key insert
        for c in self._reader._store.values():
            if c.book_id == conversation.book_id and c.participants == conversation.participants:
                return c, False
        self._reader._store[conversation.id] = conversation
        return conversation, True

    async def touch(self, conversation_id: UUID) -> None:
        self._touched.append(conversation_id)
        conversation = self._reader._store.get(conversation_id)
        if conversation is not None:
            self._reader._store[conversation_id] = dataclasses.replace(
                conversation, updated_at=datetime.now(timezone.utc),
            )


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_messages(self, conversation_id: UUID, *, limit: int = 200) -> list[Message]:
        found = [m for m in self._messages if m.conversation_id == conversation_id]
        found.sort(key=lambda m: (m.created_at, str(m.id)))
        return found[-limit:] if limit else []


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_with: Exception | None = None

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if self.fail_with is not None:
            raise self.fail_with
        if message.client_msg_id is not None:
            for m in self._reader._messages:
                if (
                    m.conversation_id == message.conversation_id
                    and m.sender_id == message.sender_id
                    and m.client_msg_id == message.client_msg_id
                ):
                    return m, False
        self._reader._messages.append(message)
        return message, True


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    books: FakeBookReader = field(default_factory=FakeBookReader)
    books_w: FakeBookWriter | None = None
    requests: FakeExchangeRequestReader = field(default_factory=FakeExchangeRequestReader)
    requests_w: FakeExchangeRequestWriter | None = None
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _commits: int = 0
    _rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.books_w is None:
            self.books_w = FakeBookWriter(self.books)
        if self.requests_w is None:
            self.requests_w = FakeExchangeRequestWriter(self.requests)
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_book(self, book: Book) -> Book:
        self.books._store[book.id] = book
        return book

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self.conversations._store[conversation.id] = conversation
        return conversation

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        self._rollbacks += 1


def fake_uow_factory(uow: FakeUoW):
    """A UnitOfWorkFactory that always hands out the same in-memory UoW."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@dataclass
class FakeGateway:
    """RealtimeGateway that records pushes for users marked online."""
    online: set[int] = field(default_factory=set)
    pushes: list[tuple[int, str, dict[str, Any]]] = field(default_factory=list)
    fail_with: Exception | None = None

    async def send_to_user(self, user_id: int, event_type: str, data: dict[str, Any]) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        if user_id not in self.online:
            return False
        self.pushes.append((user_id, event_type, data))
        return True

    async def send_chain_to_user(self, user_id: int, pushes: list[tuple[str, dict[str, Any]]]) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        if user_id not in self.online:
            return False
        for event_type, data in pushes:
            self.pushes.append((user_id, event_type, data))
        return True

    def events_for(self, user_id: int) -> list[str]:
        return [event for uid, event, _ in self.pushes if uid == user_id]
