from __future__ import annotations

import logging
from uuid import UUID

from exchange_chat.application.dto.notification import NewRequestNotification
from exchange_chat.application.events import ServerEvent
from exchange_chat.application.ports.realtime import RealtimeGateway

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget pushes for new exchange requests."""

    def __init__(self, gateway: RealtimeGateway) -> None:
        self._gateway = gateway

    async def notify_new_request(
        self,
        lister_id: int,
        book_title: str,
        requester_name: str,
        book_id: UUID,
        conversation_id: UUID,
    ) -> bool | None:
        """Push new_notification, then new_conversation, to the lister if online.

        The two travel as one chain so new_conversation is skipped wherever the
        notification finds the lister offline. Never raises; returns whether the
        notification reached a connection, or None when a fanout bus took it.
        """
        notification = NewRequestNotification(
            book_title=book_title,
            requester_name=requester_name,
            book_id=book_id,
            conversation_id=conversation_id,
        )
        try:
            delivered = await self._gateway.send_chain_to_user(lister_id, [
                (ServerEvent.NEW_NOTIFICATION, notification.to_wire()),
                (ServerEvent.NEW_CONVERSATION, {}),
            ])
        except Exception:
            logger.exception("Failed to notify lister %s", lister_id)
            return False

        if delivered:
            logger.info("Notification & chat sent to lister %s", lister_id)
        elif delivered is None:
            logger.info("Notification for lister %s handed to fanout", lister_id)
        return delivered
