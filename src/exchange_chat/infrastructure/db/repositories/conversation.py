from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from exchange_chat.domain.entities.conversation import Conversation
from exchange_chat.infrastructure.db.mappers import conversation as mapper
from exchange_chat.infrastructure.db.models.conversation import ConversationModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def find_for_pair(
        self,
        book_id: UUID,
        participant_low: int,
        participant_high: int,
    ) -> Conversation | None:
        stmt = select(ConversationModel).where(
            ConversationModel.book_id == book_id,
            ConversationModel.participant_low == participant_low,
            ConversationModel.participant_high == participant_high,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(
        self,
        user_id: int,
        *,
        limit: int = 50,
    ) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    ConversationModel.participant_low == user_id,
                    ConversationModel.participant_high == user_id,
                )
            )
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(
        self,
        conversation: Conversation,
    ) -> tuple[Conversation, bool]:
        """Insert conversation idempotently on (book, pair). Returns (conversation, created_flag)."""
        values = {
            "id": conversation.id,
            "book_id": conversation.book_id,
            "participant_low": conversation.participant_low,
            "participant_high": conversation.participant_high,
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
        }
        stmt = (
            pg_insert(ConversationModel)
            .values(**values)
            .on_conflict_do_nothing(constraint="uq_conversation_book_pair")
            .returning(ConversationModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # lost the race, read the winner
        stmt = select(ConversationModel).where(
            ConversationModel.book_id == conversation.book_id,
            ConversationModel.participant_low == conversation.participant_low,
            ConversationModel.participant_high == conversation.participant_high,
        )
        existing = (await self._session.execute(stmt)).scalar_one()
        return mapper.model_to_entity(existing), False

    async def touch(self, conversation_id: UUID) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=func.now())
        )
        await self._session.execute(stmt)
