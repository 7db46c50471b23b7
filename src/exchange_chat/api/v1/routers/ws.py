from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from exchange_chat.api.deps import ConnectionManagerDep, RelayDep, get_verifier
from exchange_chat.application.dto.message import SendMessageDTO
from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.events import ClientEvent, ServerEvent
from exchange_chat.application.exceptions import AppError, IdentityMismatchError, RelayError
from exchange_chat.config import settings
from exchange_chat.infrastructure.ws.protocol import (
    JoinPayload,
    SendMessagePayload,
    WsInbound,
    encode,
)
from exchange_chat.infrastructure.ws.session import PresenceSession
from exchange_chat.services.relay_service import MessageRelay, message_to_wire

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws")
async def ws_events(
    websocket: WebSocket,
    manager: ConnectionManagerDep,
    relay: RelayDep,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    session = await manager.connect(websocket, principal)
    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket, session), name=f"ws-heartbeat-{session.connection_id}",
    )
    try:
        await _read_loop(websocket, session, relay)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", session.connection_id)
    finally:
        heartbeat_task.cancel()
        await manager.disconnect(session)


async def _heartbeat(ws: WebSocket, session: PresenceSession) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(encode(ServerEvent.PONG))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat failed for %s", session.connection_id, exc_info=True)
        await session.close()


async def _read_loop(ws: WebSocket, session: PresenceSession, relay: MessageRelay) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send_error(ws, "invalid_payload")
            continue

        if msg.type == ClientEvent.PING:
            await ws.send_text(encode(ServerEvent.PONG))

        elif msg.type == ClientEvent.JOIN:
            await _handle_join(ws, session, msg.data)

        elif msg.type == ClientEvent.SEND_MESSAGE:
            await _handle_send(ws, session, relay, msg.data)

        else:
            await _send_error(ws, "unknown_type", type=msg.type)


async def _send_error(ws: WebSocket, code: str, **extra: Any) -> None:
    await ws.send_text(encode(ServerEvent.ERROR, {"code": code, **extra}))


async def _handle_join(ws: WebSocket, session: PresenceSession, data: Any) -> None:
    try:
        payload = JoinPayload.parse(data)
    except PydanticValidationError as exc:
        await _send_error(ws, "invalid_data", detail=str(exc))
        return

    try:
        await session.claim(payload.user_id)
    except IdentityMismatchError as exc:
        await _send_error(ws, "identity_mismatch", detail=exc.detail)


async def _handle_send(
    ws: WebSocket,
    session: PresenceSession,
    relay: MessageRelay,
    data: Any,
) -> None:
    try:
        payload = SendMessagePayload.model_validate(data)
    except PydanticValidationError as exc:
        await _send_error(ws, "invalid_data", detail=str(exc))
        return

    client_msg_id = str(payload.client_msg_id) if payload.client_msg_id else None
    if payload.sender_id != session.principal.subject_id:
        await ws.send_text(encode(ServerEvent.MESSAGE_FAILED, {
            "clientMsgId": client_msg_id,
            "code": "identity_mismatch",
            "detail": "senderId does not match the authenticated user",
        }))
        return

    dto = SendMessageDTO(
        conversation_id=payload.conversation_id,
        sender_id=payload.sender_id,
        receiver_id=payload.receiver_id,
        content=payload.content,
        client_msg_id=payload.client_msg_id,
    )
    try:
        msg = await relay.send_message(dto)
    except RelayError as exc:
        await ws.send_text(encode(ServerEvent.MESSAGE_FAILED, {
            "clientMsgId": client_msg_id, "code": "send_failed", "detail": exc.detail,
        }))
        return
    except AppError as exc:
        await ws.send_text(encode(ServerEvent.MESSAGE_FAILED, {
            "clientMsgId": client_msg_id, "code": "rejected", "detail": exc.detail,
        }))
        return

    await ws.send_text(encode(ServerEvent.MESSAGE_SENT, {
        "clientMsgId": client_msg_id, "message": message_to_wire(msg),
    }))
