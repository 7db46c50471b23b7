"""Console client: python -m exchange_chat.client

Connects with the saved session (or EXCHANGE_CLIENT_TOKEN/USER_ID) and prints
every realtime event until interrupted.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from exchange_chat.client.api import ExchangeApiClient
from exchange_chat.client.auth import AuthStore
from exchange_chat.client.cache import NotificationStore, QueryCache
from exchange_chat.client.controller import ClientSubscriptionController
from exchange_chat.client.settings import ClientSettings
from exchange_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _print_event(event_type: str, data: dict[str, Any]) -> None:
    print(f"[{event_type}] {data}")


async def run(settings: ClientSettings) -> None:
    auth = AuthStore.restore(settings.SESSION_FILE)
    if not auth.state.is_authenticated:
        if settings.TOKEN is None or settings.USER_ID is None:
            raise SystemExit("No saved session; set EXCHANGE_CLIENT_TOKEN and EXCHANGE_CLIENT_USER_ID")
        auth.login(settings.USER_ID, settings.USER_NAME, settings.TOKEN)

    api = ExchangeApiClient(settings.API_URL, lambda: auth.state.token)
    controller = ClientSubscriptionController(
        settings.WS_URL,
        auth,
        QueryCache(),
        NotificationStore(),
        api=api,
        reconnect_base_delay=settings.RECONNECT_BASE_DELAY,
        reconnect_max_delay=settings.RECONNECT_MAX_DELAY,
        on_event=_print_event,
    )
    try:
        async with controller:
            await asyncio.Event().wait()
    finally:
        await api.aclose()


def main() -> None:
    settings = ClientSettings()
    configure_logging(settings.LOG_LEVEL)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(settings))


if __name__ == "__main__":
    main()
