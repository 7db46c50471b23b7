"""Client subscription controller: one realtime connection per signed-in session."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from enum import StrEnum
from types import TracebackType
from typing import Any, Awaitable, Callable, Protocol, Self
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError as PydanticValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from exchange_chat.application.events import ClientEvent, ServerEvent
from exchange_chat.client.api import ExchangeApiClient
from exchange_chat.client.auth import AuthState, AuthStore
from exchange_chat.client.cache import (
    CONVERSATIONS_KEY,
    ChatMessage,
    Notification,
    NotificationStore,
    QueryCache,
)

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Connection(Protocol):
    """The parts of a websockets client connection the controller uses."""

    async def send(self, message: str) -> None: ...
    async def close(self) -> None: ...
    def __aiter__(self) -> Any: ...


Connector = Callable[[str], Awaitable[Connection]]
EventHook = Callable[[str, dict[str, Any]], None]


class ClientSubscriptionController:
    """Binds a realtime connection to the auth store and feeds events into the cache.

    Auth transitions are applied one at a time, in order, by a single worker.
    Inbound events are handled one at a time, in arrival order, by the reader
    of the current connection; once the connection is closed nothing more is
    dispatched from it.
    """

    def __init__(
        self,
        url: str,
        auth: AuthStore,
        cache: QueryCache,
        notifications: NotificationStore,
        *,
        api: ExchangeApiClient | None = None,
        connect: Connector = websockets.connect,
        reconnect_base_delay: float = 1.0,
        reconnect_max_delay: float = 30.0,
        on_event: EventHook | None = None,
    ) -> None:
        self._url = url
        self._auth = auth
        self._cache = cache
        self._notifications = notifications
        self._api = api
        self._connect = connect
        self._base_delay = reconnect_base_delay
        self._max_delay = reconnect_max_delay
        self._on_event = on_event

        self._state = ConnectionState.DISCONNECTED
        self._ws: Connection | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._transitions: asyncio.Queue[AuthState] = asyncio.Queue()
        self._refetches: set[asyncio.Task[None]] = set()
        # client_msg_id -> conversation_id of provisional messages awaiting an ack
        self._pending: dict[str, str] = {}
        self._unsubscribe: Callable[[], None] | None = None
        self._connected = asyncio.Event()

    @property
    def state(self) -> ConnectionState:
        return self._state

    # lifecycle

    async def start(self) -> None:
        self._worker = asyncio.create_task(self._apply_transitions(), name="auth-transitions")
        self._unsubscribe = self._auth.subscribe(self._on_auth_change)

        initial = self._auth.state
        if initial.is_authenticated:
            logger.info("Socket: User already logged in, connecting...")
            self._transitions.put_nowait(initial)

    async def stop(self) -> None:
        try:
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
        finally:
            try:
                await self._close()
            finally:
                if self._worker is not None:
                    self._worker.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await self._worker
                    self._worker = None

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def settle(self) -> None:
        """Wait until every queued auth transition has been applied."""
        await self._transitions.join()

    async def wait_connected(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._connected.wait(), timeout)

    # auth transitions

    def _on_auth_change(self, state: AuthState, previous: AuthState) -> None:
        if state.is_authenticated == previous.is_authenticated:
            return
        if state.is_authenticated:
            logger.info("Socket: Auth state changed to logged in, connecting...")
        else:
            logger.info("Socket: Auth state changed to logged out, disconnecting...")
        self._transitions.put_nowait(state)

    async def _apply_transitions(self) -> None:
        while True:
            state = await self._transitions.get()
            try:
                if state.is_authenticated:
                    self._open(state)
                else:
                    await self._close()
            except Exception:
                logger.exception("Failed to apply auth transition")
            finally:
                self._transitions.task_done()

    def _open(self, auth: AuthState) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            return
        self._state = ConnectionState.CONNECTING
        self._loop_task = asyncio.create_task(self._connection_loop(auth), name="realtime-connection")

    async def _close(self) -> None:
        task, self._loop_task = self._loop_task, None
        ws, self._ws = self._ws, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for refetch in list(self._refetches):
            refetch.cancel()
        if ws is not None:
            try:
                await ws.close()
            except Exception:
                logger.debug("Error while closing socket", exc_info=True)
        self._set_disconnected()

    # connection

    def _socket_url(self, token: str | None) -> str:
        sep = "&" if "?" in self._url else "?"
        return f"{self._url}{sep}{urlencode({'token': token or ''})}"

    def _backoff(self, attempt: int) -> float:
        return min(self._base_delay * (2 ** max(attempt - 1, 0)), self._max_delay)

    async def _connection_loop(self, auth: AuthState) -> None:
        assert auth.user is not None
        attempt = 0
        while True:
            self._state = ConnectionState.CONNECTING
            try:
                ws = await self._connect(self._socket_url(auth.token))
            except (OSError, WebSocketException, TimeoutError) as exc:
                attempt += 1
                logger.error("Socket connection error: %s", exc)
                self._emit("connect_error", {"message": str(exc)})
                await asyncio.sleep(self._backoff(attempt))
                continue

            attempt = 0
            self._ws = ws
            self._state = ConnectionState.CONNECTED
            self._connected.set()
            logger.info("Socket: Connected")
            self._emit("connect", {})
            try:
                # presence does not survive a reconnect, so every connection claims again
                await self._send(ClientEvent.JOIN, {"userId": auth.user.id})
                await self._read(ws)
            except ConnectionClosed:
                pass
            finally:
                if self._ws is ws:
                    self._ws = None
                self._set_disconnected()

            attempt += 1
            delay = self._backoff(attempt)
            logger.info("Socket: connection lost, reconnecting in %.1fs", delay)
            await asyncio.sleep(delay)

    def _set_disconnected(self) -> None:
        was_connected = self._state is ConnectionState.CONNECTED
        self._state = ConnectionState.DISCONNECTED
        self._connected.clear()
        self._fail_outstanding()
        if was_connected:
            logger.info("Socket: Disconnected")
            self._emit("disconnect", {})

    async def _send(self, event_type: str, data: dict[str, Any]) -> None:
        if self._ws is None:
            raise ConnectionError("Not connected")
        await self._ws.send(json.dumps({"type": event_type, "data": data}))

    async def _read(self, ws: Connection) -> None:
        async for raw in ws:
            try:
                envelope = json.loads(raw)
                event_type = envelope["type"]
                data = envelope.get("data") or {}
            except (ValueError, KeyError, TypeError):
                logger.warning("Ignoring malformed event: %r", raw)
                continue
            try:
                self._dispatch(event_type, data)
            except (PydanticValidationError, KeyError, TypeError):
                logger.warning("Ignoring invalid %s payload", event_type, exc_info=True)
            except Exception:
                logger.exception("Error handling %s event", event_type)
            self._emit(event_type, data)

    # inbound events

    def _dispatch(self, event_type: str, data: dict[str, Any]) -> None:
        if event_type == ServerEvent.NEW_NOTIFICATION:
            logger.info('Socket: Received "new_notification"')
            self._notifications.add(Notification.model_validate(data))

        elif event_type == ServerEvent.NEW_CONVERSATION:
            logger.info('Socket: Received "new_conversation", invalidating inbox.')
            self._cache.invalidate(CONVERSATIONS_KEY)
            self._schedule_conversations_refetch()

        elif event_type == ServerEvent.RECEIVE_MESSAGE:
            logger.info('Socket: Received "receiveMessage"')
            self._cache.append_message(ChatMessage.model_validate(data))

        elif event_type == ServerEvent.MESSAGE_SENT:
            message = ChatMessage.model_validate(data["message"])
            client_msg_id = data.get("clientMsgId") or message.id
            self._pending.pop(client_msg_id, None)
            self._cache.confirm_message(client_msg_id, message)

        elif event_type == ServerEvent.MESSAGE_FAILED:
            logger.warning("Message %s was not sent: %s", data.get("clientMsgId"), data.get("detail"))
            self._fail_provisional(data.get("clientMsgId"))

        elif event_type == ServerEvent.ERROR:
            logger.warning("Server reported error: %s", data)

    def _schedule_conversations_refetch(self) -> None:
        if self._api is None:
            return
        task = asyncio.create_task(self._refetch_conversations(), name="refetch-conversations")
        self._refetches.add(task)
        task.add_done_callback(self._refetches.discard)

    async def _refetch_conversations(self) -> None:
        assert self._api is not None
        try:
            conversations = await self._api.list_conversations()
        except Exception:
            logger.warning("Could not refetch conversations", exc_info=True)
            return
        self._cache.set(CONVERSATIONS_KEY, conversations)

    def _fail_outstanding(self) -> None:
        # acks for these can no longer arrive on a closed connection
        pending, self._pending = self._pending, {}
        for client_msg_id, conversation_id in pending.items():
            self._cache.fail_message(conversation_id, client_msg_id)
        if pending:
            logger.warning("Socket closed with %d unacknowledged messages", len(pending))

    def _fail_provisional(self, client_msg_id: str | None) -> None:
        conversation_id = self._pending.pop(client_msg_id, None) if client_msg_id else None
        if conversation_id is not None:
            self._cache.fail_message(conversation_id, client_msg_id)

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event_type, data)
        except Exception:
            logger.exception("Event hook failed for %s", event_type)

    # outbound

    async def send_message(self, conversation_id: str, receiver_id: int, content: str) -> ChatMessage:
        """Show the message immediately, then hand it to the server.

        The provisional copy is replaced once the server confirms it, or marked
        failed if it cannot be sent.
        """
        user = self._auth.state.user
        if user is None:
            raise PermissionError("Not logged in")

        provisional = ChatMessage.provisional(conversation_id, user.id, content)
        self._cache.add_provisional(provisional)
        correlation_id = provisional.client_msg_id or provisional.id
        self._pending[correlation_id] = provisional.conversation_id
        try:
            await self._send(ClientEvent.SEND_MESSAGE, {
                "conversationId": provisional.conversation_id,
                "senderId": user.id,
                "receiverId": receiver_id,
                "content": content,
                "clientMsgId": correlation_id,
            })
        except (ConnectionError, ConnectionClosed):
            logger.warning("Socket not connected; message to %s kept as failed", conversation_id)
            self._pending.pop(correlation_id, None)
            self._cache.fail_message(provisional.conversation_id, correlation_id)
        return provisional
