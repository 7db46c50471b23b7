from __future__ import annotations

from typing import Protocol
from uuid import UUID

from exchange_chat.domain.entities.book import Book


class BookReader(Protocol):
    async def get_by_id(self, book_id: UUID) -> Book | None: ...

    async def list_ids_for_lister(self, lister_id: int) -> list[UUID]: ...


class BookWriter(Protocol):
    async def set_status(self, book_id: UUID, status: str) -> None: ...
