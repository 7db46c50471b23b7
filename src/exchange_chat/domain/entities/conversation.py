from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    book_id: UUID
    participant_low: int
    participant_high: int
    created_at: datetime
    updated_at: datetime

    @property
    def participants(self) -> tuple[int, int]:
        return (self.participant_low, self.participant_high)

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_low, self.participant_high)

    def other_participant(self, user_id: int) -> int:
        if user_id == self.participant_low:
            return self.participant_high
        return self.participant_low


def participant_pair(a: int, b: int) -> tuple[int, int]:
    """Normalise an unordered participant pair into (low, high)."""
    return (a, b) if a <= b else (b, a)
