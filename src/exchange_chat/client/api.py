"""REST client used to reconcile the cache with authoritative data."""
from __future__ import annotations

from typing import Any, Callable
from uuid import UUID

import httpx

from exchange_chat.client.cache import ChatMessage


class ExchangeApiClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None],
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _get(self, path: str) -> Any:
        resp = await self._client.get(path, headers=self._headers())
        resp.raise_for_status()
        return resp.json()

    async def list_conversations(self) -> list[dict[str, Any]]:
        return await self._get("/api/v1/chat/conversations")

    async def list_messages(self, conversation_id: str | UUID) -> list[ChatMessage]:
        data = await self._get(f"/api/v1/chat/conversations/{conversation_id}/messages")
        return [ChatMessage.from_history(item) for item in data]

    async def list_received_requests(self) -> list[dict[str, Any]]:
        return await self._get("/api/v1/requests/received")

    async def create_request(self, book_id: str | UUID, message: str | None = None) -> dict[str, Any]:
        resp = await self._client.post(
            "/api/v1/requests",
            json={"bookId": str(book_id), "message": message},
            headers=self._headers(),
        )
        resp.raise_for_status()
        return resp.json()
