from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    conversation_id: UUID
    sender_id: int
    receiver_id: int
    content: str
    client_msg_id: UUID | None = None
