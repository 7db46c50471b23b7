from __future__ import annotations

from typing import Protocol
from uuid import UUID

from exchange_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def find_for_pair(
        self, book_id: UUID, participant_low: int, participant_high: int,
    ) -> Conversation | None:
        """Find the conversation for a book and a normalised participant pair."""
        ...

    async def list_for_user(self, user_id: int, *, limit: int = 50) -> list[Conversation]:
        """Conversations the user takes part in, most recently active first."""
        ...


class ConversationWriter(Protocol):
    async def create_if_not_exists(
        self, conversation: Conversation,
    ) -> tuple[Conversation, bool]:
        """Insert conversation. Return (conversation, created).

        If a conversation for the same (book, pair) already exists, that one is
        returned with created=False.
        """
        ...

    async def touch(self, conversation_id: UUID) -> None: ...
