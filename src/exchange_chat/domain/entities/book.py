from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Book:
    id: UUID
    title: str
    lister_id: int
    status: str
    created_at: datetime
