from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from exchange_chat.application.exceptions import ConflictError, NotFoundError
from exchange_chat.domain.entities.exchange_request import ExchangeRequest
from exchange_chat.domain.value_objects.enums import RequestStatus
from exchange_chat.infrastructure.db.mappers import exchange_request as mapper
from exchange_chat.infrastructure.db.models.exchange_request import ExchangeRequestModel


class ExchangeRequestReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None:
        result = await self._session.get(ExchangeRequestModel, request_id)
        return mapper.model_to_entity(result) if result else None

    async def find_active(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None:
        stmt = (
            select(ExchangeRequestModel)
            .where(
                ExchangeRequestModel.book_id == book_id,
                ExchangeRequestModel.requester_id == requester_id,
                ExchangeRequestModel.status.in_(RequestStatus.active()),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def latest_for(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None:
        stmt = (
            select(ExchangeRequestModel)
            .where(
                ExchangeRequestModel.book_id == book_id,
                ExchangeRequestModel.requester_id == requester_id,
            )
            .order_by(ExchangeRequestModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_books(self, book_ids: list[UUID]) -> list[ExchangeRequest]:
        if not book_ids:
            return []
        stmt = (
            select(ExchangeRequestModel)
            .where(ExchangeRequestModel.book_id.in_(book_ids))
            .order_by(ExchangeRequestModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_for_requester(self, requester_id: int) -> list[ExchangeRequest]:
        stmt = (
            select(ExchangeRequestModel)
            .where(ExchangeRequestModel.requester_id == requester_id)
            .order_by(ExchangeRequestModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ExchangeRequestWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, request: ExchangeRequest) -> ExchangeRequest:
        model = mapper.entity_to_model(request)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError("You already have an active request for this book") from exc
        return mapper.model_to_entity(model)

    async def set_status(self, request_id: UUID, status: str) -> ExchangeRequest:
        stmt = (
            update(ExchangeRequestModel)
            .where(ExchangeRequestModel.id == request_id)
            .values(status=status)
            .returning(ExchangeRequestModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("Request not found")
        return mapper.model_to_entity(model)
