"""Redis Pub/Sub: publish side and subscriber background task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from exchange_chat.application.ports.realtime import Push
from exchange_chat.infrastructure.bus.serializer import deserialize_push, serialize_push

logger = logging.getLogger(__name__)


OnPushCallback = Callable[[int, list[Push]], Coroutine[Any, Any, Any]]


class RedisFanoutGateway:
    """RealtimeGateway that hands pushes to every worker process via Pub/Sub.

    Whether the user is online is only known to the process holding the
    connection, so a published push reports None (False only when no process
    is subscribed at all). A chain travels as one message and
    that process applies the stop-at-first-miss rule. Pub/Sub keeps no backlog:
    a push published while no process holds the connection is simply lost.
    """

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def send_to_user(
        self,
        user_id: int,
        event_type: str,
        data: dict[str, Any],
    ) -> bool | None:
        return await self.send_chain_to_user(user_id, [(event_type, data)])

    async def send_chain_to_user(self, user_id: int, pushes: list[Push]) -> bool | None:
        receivers = await self._redis.publish(self._channel, serialize_push(user_id, pushes))
        if not receivers:
            logger.warning("No subscriber on %s; push for user %s dropped", self._channel, user_id)
            return False
        return None


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches pushes."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnPushCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    user_id, pushes = deserialize_push(message["data"])
                    await self._callback(user_id, pushes)
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
