from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ExchangeRequest:
    id: UUID
    requester_id: int
    book_id: UUID
    status: str
    message: str
    created_at: datetime
    updated_at: datetime
