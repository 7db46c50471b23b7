from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from exchange_chat.application.dto.message import SendMessageDTO
from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from exchange_chat.services import message_service
from tests.conftest import LISTER_ID, REQUESTER_ID, FakeUoW, make_conversation, make_message


@pytest.fixture
def uow_with_conversation():
    uow = FakeUoW()
    conv = uow.add_conversation(make_conversation())
    return uow, conv


def _dto(conv, *, content="hello", client_msg_id=None, sender=REQUESTER_ID, receiver=LISTER_ID):
    return SendMessageDTO(
        conversation_id=conv.id,
        sender_id=sender,
        receiver_id=receiver,
        content=content,
        client_msg_id=client_msg_id,
    )


@pytest.mark.asyncio
async def test_persist_message_creates_message(uow_with_conversation):
    uow, conv = uow_with_conversation
    client_msg_id = uuid.uuid4()

    msg, created = await message_service.persist_message(_dto(conv, client_msg_id=client_msg_id), uow)

    assert created is True
    assert msg.content == "hello"
    assert msg.conversation_id == conv.id
    assert msg.client_msg_id == client_msg_id
    assert uow._committed is True
    assert uow.conversations_w._touched == [conv.id]


@pytest.mark.asyncio
async def test_persist_message_idempotent(uow_with_conversation):
    uow, conv = uow_with_conversation
    client_msg_id = uuid.uuid4()

    msg1, created1 = await message_service.persist_message(_dto(conv, client_msg_id=client_msg_id), uow)
    uow._committed = False
    msg2, created2 = await message_service.persist_message(_dto(conv, client_msg_id=client_msg_id), uow)

    assert created1 is True
    assert created2 is False
    assert msg1.id == msg2.id
    assert uow._committed is False
    assert len(uow.messages._messages) == 1


@pytest.mark.asyncio
async def test_persist_message_without_client_id_always_creates(uow_with_conversation):
    uow, conv = uow_with_conversation

    await message_service.persist_message(_dto(conv), uow)
    await message_service.persist_message(_dto(conv), uow)

    assert len(uow.messages._messages) == 2


@pytest.mark.asyncio
async def test_persist_message_strips_content(uow_with_conversation):
    uow, conv = uow_with_conversation

    msg, _ = await message_service.persist_message(_dto(conv, content="  hi there \n"), uow)

    assert msg.content == "hi there"


@pytest.mark.asyncio
async def test_persist_message_rejects_blank_content(uow_with_conversation):
    uow, conv = uow_with_conversation

    with pytest.raises(ValidationError):
        await message_service.persist_message(_dto(conv, content="   "), uow)
    assert uow.messages._messages == []


@pytest.mark.asyncio
async def test_persist_message_forbidden_for_non_participant(uow_with_conversation):
    uow, conv = uow_with_conversation

    with pytest.raises(ForbiddenError):
        await message_service.persist_message(_dto(conv, sender=999), uow)


@pytest.mark.asyncio
async def test_persist_message_rejects_wrong_receiver(uow_with_conversation):
    uow, conv = uow_with_conversation

    with pytest.raises(ValidationError):
        await message_service.persist_message(_dto(conv, receiver=999), uow)


@pytest.mark.asyncio
async def test_persist_message_unknown_conversation():
    conv = make_conversation()

    with pytest.raises(NotFoundError):
        await message_service.persist_message(_dto(conv), FakeUoW())


@pytest.mark.asyncio
async def test_list_messages_oldest_first(uow_with_conversation, lister_principal):
    uow, conv = uow_with_conversation
    base = datetime.now(timezone.utc)
    late = make_message(conversation_id=conv.id, content="second", created_at=base + timedelta(seconds=5))
    early = make_message(conversation_id=conv.id, content="first", created_at=base)
    uow.messages._messages.extend([late, early, make_message(content="elsewhere")])

    result = await message_service.list_messages(conv.id, lister_principal, 200, uow)

    assert [m.content for m in result] == ["first", "second"]


@pytest.mark.asyncio
async def test_list_messages_forbidden_for_outsider(uow_with_conversation):
    uow, conv = uow_with_conversation

    with pytest.raises(ForbiddenError):
        await message_service.list_messages(conv.id, Principal(subject_id=999), 200, uow)


@pytest.mark.asyncio
async def test_list_messages_returns_newest_page(uow_with_conversation, lister_principal):
    uow, conv = uow_with_conversation
    base = datetime.now(timezone.utc)
    uow.messages._messages.extend(
        make_message(conversation_id=conv.id, content=f"m{i}", created_at=base + timedelta(seconds=i))
        for i in range(501)
    )

    result = await message_service.list_messages(conv.id, lister_principal, 500, uow)

    assert len(result) == 500
    assert result[0].content == "m1"
    assert result[-1].content == "m500"
