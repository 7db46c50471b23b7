"""Client-side authentication state with change subscriptions."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""


class AuthState(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: User | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)


AuthListener = Callable[[AuthState, AuthState], None]


class AuthStore:
    """Holds the current session and notifies listeners with (state, previous).

    When a storage path is given the session survives restarts, so a client
    can start already authenticated.
    """

    def __init__(self, state: AuthState | None = None, *, storage_path: Path | None = None) -> None:
        self._state = state or AuthState()
        self._storage_path = storage_path
        self._listeners: list[AuthListener] = []

    @classmethod
    def restore(cls, storage_path: Path) -> AuthStore:
        state = AuthState()
        if storage_path.exists():
            try:
                state = AuthState.model_validate_json(storage_path.read_text())
            except ValueError:
                logger.warning("Ignoring unreadable session file %s", storage_path)
        return cls(state, storage_path=storage_path)

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def login(self, user_id: int, name: str, token: str) -> None:
        self._set(AuthState(user=User(id=user_id, name=name), token=token))

    def logout(self) -> None:
        self._set(AuthState())

    def _set(self, state: AuthState) -> None:
        previous, self._state = self._state, state
        self._persist()
        for listener in list(self._listeners):
            listener(state, previous)

    def _persist(self) -> None:
        if self._storage_path is None:
            return
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        self._storage_path.write_text(self._state.model_dump_json())
