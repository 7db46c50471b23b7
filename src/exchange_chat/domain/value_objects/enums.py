from __future__ import annotations

from enum import StrEnum


class BookStatus(StrEnum):
    AVAILABLE = "available"
    SOLD = "sold"


class RequestStatus(StrEnum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"

    @classmethod
    def active(cls) -> tuple[RequestStatus, ...]:
        return (cls.PENDING, cls.ACCEPTED)
