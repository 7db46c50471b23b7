from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from exchange_chat.domain.value_objects.enums import RequestStatus


class CreateRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: UUID = Field(alias="bookId")
    message: str | None = None


class RespondRequestBody(BaseModel):
    status: RequestStatus


class ExchangeRequestResponse(BaseModel):
    id: UUID
    requester_id: int
    book_id: UUID
    status: str
    message: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RequestStatusResponse(BaseModel):
    status: str | None
