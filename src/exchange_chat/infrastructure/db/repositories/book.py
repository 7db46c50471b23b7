from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exchange_chat.domain.entities.book import Book
from exchange_chat.infrastructure.db.mappers import book as mapper
from exchange_chat.infrastructure.db.models.book import BookModel


class BookReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, book_id: UUID) -> Book | None:
        result = await self._session.get(BookModel, book_id)
        return mapper.model_to_entity(result) if result else None

    async def list_ids_for_lister(self, lister_id: int) -> list[UUID]:
        stmt = select(BookModel.id).where(BookModel.lister_id == lister_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class BookWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, book: Book) -> Book:
        model = mapper.entity_to_model(book)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def set_status(self, book_id: UUID, status: str) -> None:
        stmt = update(BookModel).where(BookModel.id == book_id).values(status=status)
        await self._session.execute(stmt)
