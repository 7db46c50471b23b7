from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: int
    content: str
    client_msg_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
