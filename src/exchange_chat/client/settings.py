from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    WS_URL: str = "ws://localhost:5000/ws"
    API_URL: str = "http://localhost:5000"

    RECONNECT_BASE_DELAY: float = 1.0
    RECONNECT_MAX_DELAY: float = 30.0

    SESSION_FILE: Path = Path.home() / ".exchange_chat" / "session.json"

    # used by the console client when no saved session exists
    TOKEN: str | None = None
    USER_ID: int | None = None
    USER_NAME: str = ""

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_CLIENT_",
        env_file=".env",
        extra="ignore",
    )
