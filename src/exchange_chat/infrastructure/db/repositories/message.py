from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from exchange_chat.domain.entities.message import Message
from exchange_chat.infrastructure.db.mappers import message as mapper
from exchange_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 200,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        # newest page, returned oldest first
        return [mapper.model_to_entity(m) for m in reversed(result.scalars().all())]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        values = {
            "id": message.id,
            "conversation_id": message.conversation_id,
            "sender_id": message.sender_id,
            "content": message.content,
            "client_msg_id": message.client_msg_id,
            "created_at": message.created_at,
        }
        stmt = (
            pg_insert(MessageModel)
            .values(**values)
            .on_conflict_do_nothing(constraint="uq_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # conflict: fetch existing
        stmt = select(MessageModel).where(
            MessageModel.conversation_id == message.conversation_id,
            MessageModel.sender_id == message.sender_id,
            MessageModel.client_msg_id == message.client_msg_id,
        )
        existing = (await self._session.execute(stmt)).scalar_one()
        return mapper.model_to_entity(existing), False
