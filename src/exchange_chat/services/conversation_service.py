from __future__ import annotations

import uuid
from datetime import datetime, timezone

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.policies.permissions import assert_conversation_access
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.conversation import Conversation, participant_pair


async def get_or_create_book_conversation(
    book_id: uuid.UUID,
    user_a: int,
    user_b: int,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the conversation for this book and pair of users, creating it if needed.

    Returns (conversation, created). Safe under concurrent callers: the insert
    is keyed on (book, pair) so a losing writer reads back the winner's row.
    The caller commits.
    """
    low, high = participant_pair(user_a, user_b)
    existing = await uow.conversations.find_for_pair(book_id, low, high)
    if existing is not None:
        return existing, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        book_id=book_id,
        participant_low=low,
        participant_high=high,
        created_at=now,
        updated_at=now,
    )
    return await uow.conversations_w.create_if_not_exists(conversation)


async def list_user_conversations(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_user(principal.subject_id, limit=limit)


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_conversation_access(principal.subject_id, conversation)
