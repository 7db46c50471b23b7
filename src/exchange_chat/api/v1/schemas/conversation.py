from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from exchange_chat.domain.entities.conversation import Conversation


class ConversationResponse(BaseModel):
    id: UUID
    book_id: UUID
    participants: list[int]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, conversation: Conversation) -> ConversationResponse:
        return cls(
            id=conversation.id,
            book_id=conversation.book_id,
            participants=list(conversation.participants),
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
