from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from exchange_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from exchange_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    requests,
    ws,
)
from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from exchange_chat.application.ports.realtime import Push
from exchange_chat.config import settings
from exchange_chat.infrastructure.bus.redis_pubsub import (
    RedisFanoutGateway,
    RedisPubSubSubscriber,
)
from exchange_chat.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    manager: ConnectionManager = app.state.connections

    if settings.RELAY_FANOUT != "redis":
        logger.info("Realtime pushes delivered in-process")
        yield
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    async def _on_push(user_id: int, pushes: list[Push]) -> None:
        await manager.send_chain_to_user(user_id, pushes)

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _on_push,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber
    app.state.gateway = RedisFanoutGateway(app.state.redis, settings.REDIS_PUBSUB_CHANNEL)

    try:
        yield
    finally:
        app.state.gateway = manager
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Book Exchange Chat",
        version="0.1.0",
        lifespan=lifespan,
    )

    manager = ConnectionManager()
    app.state.connections = manager
    app.state.gateway = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(requests.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.detail})
