from __future__ import annotations

from typing import Any, Protocol

Push = tuple[str, dict[str, Any]]


class RealtimeGateway(Protocol):
    """Pushes server events to whichever live connection a user has claimed.

    Results are True (reached a connection), False (user offline, not an error)
    or None (handed to a fanout bus; the owning process decides and nobody
    learns the outcome).
    """

    async def send_to_user(
        self, user_id: int, event_type: str, data: dict[str, Any],
    ) -> bool | None: ...

    async def send_chain_to_user(
        self, user_id: int, pushes: list[Push],
    ) -> bool | None:
        """Send pushes in order, stopping at the first one that is not delivered.

        The result is that of the first push.
        """
        ...
