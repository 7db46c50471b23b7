"""Process-wide table of which live connection each user has claimed."""
from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps user id → connection id, first claim wins.

    Insertion is keyed by user, removal by connection, so a late disconnect of
    some other connection never evicts the live one. All operations take the
    same lock and never await anything else while holding it.
    """

    def __init__(self) -> None:
        self._by_user: dict[int, str] = {}
        self._lock = asyncio.Lock()

    async def add(self, user_id: int, connection_id: str) -> bool:
        """Record the claim unless the user already has one. Returns True if inserted."""
        async with self._lock:
            if user_id in self._by_user:
                return False
            self._by_user[user_id] = connection_id
            return True

    async def remove(self, connection_id: str) -> None:
        async with self._lock:
            stale = [uid for uid, cid in self._by_user.items() if cid == connection_id]
            for uid in stale:
                del self._by_user[uid]
        if stale:
            logger.debug("Registry released %s for users %s", connection_id, stale)

    async def lookup(self, user_id: int) -> str | None:
        """Return the user's connection id, or None when the user is offline."""
        async with self._lock:
            return self._by_user.get(user_id)

    def snapshot(self) -> dict[int, str]:
        return dict(self._by_user)

    def __len__(self) -> int:
        return len(self._by_user)
