"""Chat relay: persist a message, then forward it to the receiver if online."""
from __future__ import annotations

import logging
from typing import Any

from exchange_chat.application.dto.message import SendMessageDTO
from exchange_chat.application.events import ServerEvent
from exchange_chat.application.exceptions import AppError, RelayError
from exchange_chat.application.ports.realtime import RealtimeGateway
from exchange_chat.application.uow import UnitOfWorkFactory
from exchange_chat.domain.entities.message import Message
from exchange_chat.services import message_service

logger = logging.getLogger(__name__)


def message_to_wire(msg: Message) -> dict[str, Any]:
    return {
        "id": str(msg.id),
        "conversationId": str(msg.conversation_id),
        "sender": msg.sender_id,
        "content": msg.content,
        "clientMsgId": str(msg.client_msg_id) if msg.client_msg_id else None,
        "createdAt": msg.created_at.isoformat(),
    }


class MessageRelay:
    """Delivery is at most once and only to a connected receiver.

    History stays authoritative: nothing is pushed unless it was stored first,
    and a stored message is never retried or queued for an offline receiver.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, gateway: RealtimeGateway) -> None:
        self._uow_factory = uow_factory
        self._gateway = gateway

    async def send_message(self, dto: SendMessageDTO) -> Message:
        try:
            async with self._uow_factory() as uow:
                msg, created = await message_service.persist_message(dto, uow)
        except AppError:
            raise
        except Exception as exc:
            logger.exception(
                "Error persisting message for conversation %s from %s",
                dto.conversation_id, dto.sender_id,
            )
            raise RelayError("Message could not be saved") from exc

        if not created:
            logger.debug("Message %s already stored, not re-delivered", msg.client_msg_id)
            return msg

        try:
            delivered = await self._gateway.send_to_user(
                dto.receiver_id, ServerEvent.RECEIVE_MESSAGE, message_to_wire(msg),
            )
        except Exception:
            logger.exception("Error delivering message %s", msg.id)
            delivered = False
        if delivered is False:
            logger.debug("Receiver %s offline; message %s left in history", dto.receiver_id, msg.id)
        elif delivered is None:
            logger.debug("Message %s for %s handed to fanout", msg.id, dto.receiver_id)
        return msg
