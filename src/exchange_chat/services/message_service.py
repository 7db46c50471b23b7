from __future__ import annotations

import uuid
from datetime import datetime, timezone

from exchange_chat.application.dto.message import SendMessageDTO
from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import ValidationError
from exchange_chat.application.policies.permissions import assert_conversation_access
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.message import Message


async def persist_message(
    dto: SendMessageDTO,
    uow: UnitOfWork,
) -> tuple[Message, bool]:
    """Store a chat message idempotently.

    Returns (message, created). If a message with the same client_msg_id
    already exists the existing one is returned with created=False.
    """
    conversation = await uow.conversations.get_by_id(dto.conversation_id)
    conversation = assert_conversation_access(dto.sender_id, conversation)
    if conversation.other_participant(dto.sender_id) != dto.receiver_id:
        raise ValidationError("Receiver is not the other participant of this conversation")

    content = dto.content.strip()
    if not content:
        raise ValidationError("Message content is empty")

    msg = Message(
        id=uuid.uuid4(),
        conversation_id=dto.conversation_id,
        sender_id=dto.sender_id,
        content=content,
        client_msg_id=dto.client_msg_id,
        created_at=datetime.now(timezone.utc),
    )
    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.conversations_w.touch(dto.conversation_id)
        await uow.commit()

    return msg, created


async def list_messages(
    conversation_id: uuid.UUID,
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal.subject_id, conversation)
    messages = await uow.messages.list_messages(conversation_id, limit=limit)
    return sorted(messages, key=lambda m: (m.created_at, str(m.id)))
