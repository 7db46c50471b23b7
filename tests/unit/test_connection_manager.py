from __future__ import annotations

import json

import pytest

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.events import ServerEvent
from exchange_chat.infrastructure.ws.manager import ConnectionManager


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, text: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_send_to_joined_user():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    session = await manager.connect(ws, Principal(subject_id=7))
    await session.claim(7)

    delivered = await manager.send_to_user(7, ServerEvent.NEW_CONVERSATION, {})

    assert ws.accepted is True
    assert delivered is True
    assert ws.sent == [{"type": "new_conversation", "data": {}}]


@pytest.mark.asyncio
async def test_connected_but_not_joined_user_is_offline():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect(ws, Principal(subject_id=7))

    assert await manager.send_to_user(7, ServerEvent.NEW_CONVERSATION, {}) is False
    assert ws.sent == []


@pytest.mark.asyncio
async def test_disconnect_makes_user_offline():
    manager = ConnectionManager()
    session = await manager.connect(FakeWebSocket(), Principal(subject_id=7))
    await session.claim(7)

    await manager.disconnect(session)

    assert await manager.send_to_user(7, ServerEvent.NEW_CONVERSATION, {}) is False
    assert manager.open_connections == 0
    assert len(manager.registry) == 0


@pytest.mark.asyncio
async def test_failed_push_evicts_dead_connection():
    manager = ConnectionManager()
    session = await manager.connect(FakeWebSocket(broken=True), Principal(subject_id=7))
    await session.claim(7)

    assert await manager.send_to_user(7, ServerEvent.NEW_CONVERSATION, {}) is False

    assert await manager.registry.lookup(7) is None
    assert manager.open_connections == 0


@pytest.mark.asyncio
async def test_chain_sends_in_order_to_joined_user():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    session = await manager.connect(ws, Principal(subject_id=7))
    await session.claim(7)

    delivered = await manager.send_chain_to_user(7, [
        (ServerEvent.NEW_NOTIFICATION, {"message": "hi"}),
        (ServerEvent.NEW_CONVERSATION, {}),
    ])

    assert delivered is True
    assert [frame["type"] for frame in ws.sent] == ["new_notification", "new_conversation"]


@pytest.mark.asyncio
async def test_chain_stops_when_user_offline():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect(ws, Principal(subject_id=7))

    delivered = await manager.send_chain_to_user(7, [
        (ServerEvent.NEW_NOTIFICATION, {"message": "hi"}),
        (ServerEvent.NEW_CONVERSATION, {}),
    ])

    assert delivered is False
    assert ws.sent == []
