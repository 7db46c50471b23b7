"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join | sendMessage | ping
    data: Any = None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # new_notification | new_conversation | receiveMessage | messageSent | ...
    data: dict[str, Any] = {}


class JoinPayload(BaseModel):
    user_id: int = Field(alias="userId")

    @classmethod
    def parse(cls, data: Any) -> JoinPayload:
        # a bare id is accepted as well as {"userId": ...}
        if isinstance(data, (str, int)):
            data = {"userId": data}
        return cls.model_validate(data)


class SendMessagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: UUID = Field(alias="conversationId")
    sender_id: int = Field(alias="senderId")
    receiver_id: int = Field(alias="receiverId")
    content: str = Field(min_length=1, max_length=4000)
    client_msg_id: UUID | None = Field(default=None, alias="clientMsgId")


def encode(event_type: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=event_type, data=data or {}).model_dump_json()
