from __future__ import annotations

from typing import Protocol
from uuid import UUID

from exchange_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 200,
    ) -> list[Message]:
        """The newest `limit` messages, returned oldest first by (created_at, id)."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_msg_id → return existing."""
        ...
