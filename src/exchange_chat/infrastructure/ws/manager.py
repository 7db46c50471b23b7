"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import WebSocket

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.ports.realtime import Push
from exchange_chat.infrastructure.ws.protocol import encode
from exchange_chat.infrastructure.ws.registry import ConnectionRegistry
from exchange_chat.infrastructure.ws.session import PresenceSession

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the presence registry and the connection id → socket table.

    Implements application.ports.realtime.RealtimeGateway for this process.
    """

    def __init__(self, registry: ConnectionRegistry | None = None) -> None:
        self.registry = registry or ConnectionRegistry()
        self._sockets: dict[str, WebSocket] = {}

    async def connect(self, ws: WebSocket, principal: Principal) -> PresenceSession:
        await ws.accept()
        connection_id = uuid.uuid4().hex
        self._sockets[connection_id] = ws
        logger.info("A user connected: %s (open=%d)", connection_id, len(self._sockets))
        return PresenceSession(connection_id, principal, self.registry)

    async def disconnect(self, session: PresenceSession) -> None:
        self._sockets.pop(session.connection_id, None)
        await session.close()
        logger.info("A user disconnected: %s", session.connection_id)

    async def send_to_user(
        self,
        user_id: int,
        event_type: str,
        data: dict[str, Any],
    ) -> bool:
        """Push an event to the user's claimed connection. False if offline."""
        connection_id = await self.registry.lookup(user_id)
        if connection_id is None:
            return False
        return await self.send_to_connection(connection_id, event_type, data)

    async def send_chain_to_user(self, user_id: int, pushes: list[Push]) -> bool:
        """Send pushes in order, stopping at the first that does not reach the user."""
        first: bool | None = None
        for event_type, data in pushes:
            delivered = await self.send_to_user(user_id, event_type, data)
            if first is None:
                first = delivered
            if not delivered:
                break
        return bool(first)

    async def send_to_connection(
        self,
        connection_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> bool:
        ws = self._sockets.get(connection_id)
        if ws is None:
            # claimed but the socket is already gone
            await self.registry.remove(connection_id)
            return False
        try:
            await ws.send_text(encode(event_type, data))
        except Exception:
            logger.debug("Dropping dead connection %s", connection_id, exc_info=True)
            self._sockets.pop(connection_id, None)
            await self.registry.remove(connection_id)
            return False
        return True

    @property
    def open_connections(self) -> int:
        return len(self._sockets)
