"""Per-connection presence state machine: ANONYMOUS → JOINED → CLOSED."""
from __future__ import annotations

import logging
from enum import StrEnum

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import IdentityMismatchError
from exchange_chat.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    ANONYMOUS = "anonymous"
    JOINED = "joined"
    CLOSED = "closed"


class PresenceSession:
    """One open connection and the identity it has claimed, if any.

    The principal comes from the token verified at connect time; a connection
    may only ever claim that identity.
    """

    def __init__(
        self,
        connection_id: str,
        principal: Principal,
        registry: ConnectionRegistry,
    ) -> None:
        self.connection_id = connection_id
        self.principal = principal
        self._registry = registry
        self._state = SessionState.ANONYMOUS
        self._user_id: int | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_id(self) -> int | None:
        return self._user_id

    async def claim(self, user_id: int) -> None:
        """Handle a join. Re-claiming the same id is a no-op.

        Raises IdentityMismatchError for any id other than the authenticated one,
        including a switch to a different id after an earlier claim.
        """
        if self._state is SessionState.CLOSED:
            logger.debug("Ignoring join on closed connection %s", self.connection_id)
            return

        if user_id != self.principal.subject_id:
            logger.warning(
                "Connection %s authenticated as %s tried to join as %s",
                self.connection_id, self.principal.subject_id, user_id,
            )
            raise IdentityMismatchError(f"Cannot join as user {user_id}")

        inserted = await self._registry.add(user_id, self.connection_id)
        self._state = SessionState.JOINED
        self._user_id = user_id
        if inserted:
            logger.info("User %s joined with connection %s", user_id, self.connection_id)
        else:
            logger.debug("User %s re-joined, keeping first claim", user_id)

    async def close(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        await self._registry.remove(self.connection_id)
