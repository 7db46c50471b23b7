"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.ports.auth import TokenVerifier
from exchange_chat.application.ports.realtime import RealtimeGateway
from exchange_chat.application.uow import UnitOfWorkFactory
from exchange_chat.config import settings
from exchange_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from exchange_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from exchange_chat.infrastructure.db.session import AsyncSessionLocal
from exchange_chat.infrastructure.db.uow import SqlAlchemyUoW, uow_factory
from exchange_chat.infrastructure.ws.manager import ConnectionManager
from exchange_chat.services.notification_service import NotificationDispatcher
from exchange_chat.services.relay_service import MessageRelay

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def get_uow_factory() -> UnitOfWorkFactory:
    """Per-event units of work for long-lived WebSocket handlers."""
    return uow_factory(AsyncSessionLocal)


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_connection_manager(conn: HTTPConnection) -> ConnectionManager:
    return conn.app.state.connections


def get_gateway(conn: HTTPConnection) -> RealtimeGateway:
    return conn.app.state.gateway


GatewayDep = Annotated[RealtimeGateway, Depends(get_gateway)]


def get_dispatcher(gateway: GatewayDep) -> NotificationDispatcher:
    return NotificationDispatcher(gateway)


DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]


def get_relay(
    factory: Annotated[UnitOfWorkFactory, Depends(get_uow_factory)],
    gateway: GatewayDep,
) -> MessageRelay:
    return MessageRelay(factory, gateway)


ConnectionManagerDep = Annotated[ConnectionManager, Depends(get_connection_manager)]
RelayDep = Annotated[MessageRelay, Depends(get_relay)]
