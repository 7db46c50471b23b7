from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from exchange_chat.application.events import ServerEvent
from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from exchange_chat.domain.value_objects.enums import BookStatus, RequestStatus
from exchange_chat.services import request_service
from exchange_chat.services.notification_service import NotificationDispatcher
from tests.conftest import (
    LISTER_ID,
    REQUESTER_ID,
    FakeGateway,
    FakeUoW,
    make_book,
    make_request,
)


@pytest.fixture
def uow():
    return FakeUoW()


@pytest.fixture
def book(uow):
    return uow.add_book(make_book())


@pytest.fixture
def gateway():
    return FakeGateway(online={LISTER_ID})


@pytest.fixture
def dispatcher(gateway):
    return NotificationDispatcher(gateway)


@pytest.mark.asyncio
async def test_create_request_opens_chat_and_notifies_lister(uow, book, gateway, dispatcher, requester_principal):
    request = await request_service.create_request(
        book.id, "Can we swap?", requester_principal, uow, dispatcher,
    )

    assert request.status == RequestStatus.PENDING
    assert request.requester_id == REQUESTER_ID
    assert uow.requests._store[request.id] == request

    [conv] = uow.conversations._store.values()
    assert conv.book_id == book.id
    assert conv.participants == (LISTER_ID, REQUESTER_ID)
    [first] = uow.messages._messages
    assert first.conversation_id == conv.id
    assert first.sender_id == REQUESTER_ID
    assert first.content == "Can we swap?"

    assert gateway.events_for(LISTER_ID) == [
        ServerEvent.NEW_NOTIFICATION,
        ServerEvent.NEW_CONVERSATION,
    ]
    _, _, payload = gateway.pushes[0]
    assert payload["requesterName"] == "Rick"
    assert payload["conversationId"] == str(conv.id)


@pytest.mark.asyncio
async def test_create_request_without_message_uses_default_opening(uow, book, dispatcher, requester_principal):
    await request_service.create_request(book.id, None, requester_principal, uow, dispatcher)

    [first] = uow.messages._messages
    assert first.content == request_service.DEFAULT_OPENING_MESSAGE


@pytest.mark.asyncio
async def test_create_request_reuses_existing_conversation(uow, book, dispatcher, requester_principal, lister_principal):
    first = await request_service.create_request(book.id, "hi", requester_principal, uow, dispatcher)
    await request_service.respond_to_request(
        first.id, RequestStatus.DECLINED, lister_principal, uow,
    )

    await request_service.create_request(book.id, "again?", requester_principal, uow, dispatcher)

    assert len(uow.conversations._store) == 1
    assert [m.content for m in uow.messages._messages] == ["hi", "again?"]


@pytest.mark.asyncio
async def test_offline_lister_request_is_still_listed(uow, book, requester_principal, lister_principal):
    gateway = FakeGateway()

    request = await request_service.create_request(
        book.id, None, requester_principal, uow, NotificationDispatcher(gateway),
    )
    received = await request_service.list_received_requests(lister_principal, uow)

    assert gateway.pushes == []
    assert [r.id for r in received] == [request.id]


@pytest.mark.asyncio
async def test_chat_failure_keeps_request_and_skips_notification(uow, book, gateway, dispatcher, requester_principal):
    uow.messages_w.fail_with = RuntimeError("db down")

    request = await request_service.create_request(book.id, None, requester_principal, uow, dispatcher)

    assert request.id in uow.requests._store
    assert uow._rollbacks == 1
    assert gateway.pushes == []


@pytest.mark.asyncio
async def test_create_request_for_own_book_rejected(uow, book, dispatcher, lister_principal):
    with pytest.raises(ValidationError):
        await request_service.create_request(book.id, None, lister_principal, uow, dispatcher)


@pytest.mark.asyncio
async def test_create_request_for_missing_book(uow, dispatcher, requester_principal):
    with pytest.raises(NotFoundError):
        await request_service.create_request(uuid.uuid4(), None, requester_principal, uow, dispatcher)


@pytest.mark.asyncio
async def test_create_request_twice_conflicts(uow, book, gateway, dispatcher, requester_principal):
    await request_service.create_request(book.id, None, requester_principal, uow, dispatcher)

    with pytest.raises(ConflictError):
        await request_service.create_request(book.id, None, requester_principal, uow, dispatcher)

    assert gateway.events_for(LISTER_ID).count(ServerEvent.NEW_NOTIFICATION) == 1


@pytest.mark.asyncio
async def test_create_request_message_too_long(uow, book, dispatcher, requester_principal):
    with pytest.raises(ValidationError):
        await request_service.create_request(
            book.id, "x" * (request_service.MAX_MESSAGE_LENGTH + 1), requester_principal, uow, dispatcher,
        )


@pytest.mark.asyncio
async def test_received_and_sent_lists(uow, book, lister_principal, requester_principal):
    other_book = uow.add_book(make_book(lister_id=REQUESTER_ID))
    older = make_request(book_id=book.id, requester_id=3, age=timedelta(minutes=5))
    newer = make_request(book_id=book.id)
    sent = make_request(book_id=other_book.id, requester_id=LISTER_ID)
    for r in (older, newer, sent):
        uow.requests._store[r.id] = r

    received = await request_service.list_received_requests(lister_principal, uow)
    outgoing = await request_service.list_sent_requests(lister_principal, uow)

    assert [r.id for r in received] == [newer.id, older.id]
    assert [r.id for r in outgoing] == [sent.id]


@pytest.mark.asyncio
async def test_accepting_marks_book_sold(uow, book, lister_principal):
    request = make_request(book_id=book.id)
    uow.requests._store[request.id] = request

    updated = await request_service.respond_to_request(
        request.id, RequestStatus.ACCEPTED, lister_principal, uow,
    )

    assert updated.status == RequestStatus.ACCEPTED
    assert uow.books._store[book.id].status == BookStatus.SOLD
    assert uow._committed is True


@pytest.mark.asyncio
async def test_declining_keeps_book_available(uow, book, lister_principal):
    request = make_request(book_id=book.id)
    uow.requests._store[request.id] = request

    await request_service.respond_to_request(request.id, RequestStatus.DECLINED, lister_principal, uow)

    assert uow.books._store[book.id].status == BookStatus.AVAILABLE


@pytest.mark.asyncio
async def test_only_lister_may_respond(uow, book, requester_principal):
    request = make_request(book_id=book.id)
    uow.requests._store[request.id] = request

    with pytest.raises(ForbiddenError):
        await request_service.respond_to_request(
            request.id, RequestStatus.ACCEPTED, requester_principal, uow,
        )


@pytest.mark.asyncio
async def test_cannot_respond_twice(uow, book, lister_principal):
    request = make_request(book_id=book.id, status=RequestStatus.DECLINED)
    uow.requests._store[request.id] = request

    with pytest.raises(ValidationError):
        await request_service.respond_to_request(
            request.id, RequestStatus.ACCEPTED, lister_principal, uow,
        )


@pytest.mark.asyncio
async def test_cannot_respond_with_pending(uow, book, lister_principal):
    request = make_request(book_id=book.id)
    uow.requests._store[request.id] = request

    with pytest.raises(ValidationError):
        await request_service.respond_to_request(
            request.id, RequestStatus.PENDING, lister_principal, uow,
        )


@pytest.mark.asyncio
async def test_check_request_status(uow, book, requester_principal):
    assert await request_service.check_request_status(book.id, requester_principal, uow) is None

    request = make_request(book_id=book.id)
    uow.requests._store[request.id] = request

    assert await request_service.check_request_status(book.id, requester_principal, uow) == "Pending"
