from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class NewRequestNotification:
    """Transient payload pushed to a lister; never persisted."""

    book_title: str
    requester_name: str
    book_id: UUID
    conversation_id: UUID

    @property
    def message(self) -> str:
        return f'You have a new request for "{self.book_title}" from {self.requester_name}.'

    def to_wire(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "bookId": str(self.book_id),
            "requesterName": self.requester_name,
            "conversationId": str(self.conversation_id),
        }
