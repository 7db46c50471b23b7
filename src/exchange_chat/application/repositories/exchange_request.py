from __future__ import annotations

from typing import Protocol
from uuid import UUID

from exchange_chat.domain.entities.exchange_request import ExchangeRequest


class ExchangeRequestReader(Protocol):
    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None: ...

    async def find_active(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None:
        """Pending or accepted request of this requester for this book."""
        ...

    async def latest_for(self, book_id: UUID, requester_id: int) -> ExchangeRequest | None: ...

    async def list_for_books(self, book_ids: list[UUID]) -> list[ExchangeRequest]:
        """Requests for any of the given books, newest first."""
        ...

    async def list_for_requester(self, requester_id: int) -> list[ExchangeRequest]:
        """Requests sent by the user, newest first."""
        ...


class ExchangeRequestWriter(Protocol):
    async def create(self, request: ExchangeRequest) -> ExchangeRequest:
        """Insert request. Raises ConflictError if an active one already exists."""
        ...

    async def set_status(self, request_id: UUID, status: str) -> ExchangeRequest: ...
