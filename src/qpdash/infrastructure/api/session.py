from __future__ import annotations

from typing import Optional

from qpdash.config.constants import SESSION_TOKEN_KEY
from qpdash.infrastructure.storage.kv_store import KeyValueStore


class SessionStore:
    """The single stored bearer credential (written on login, cleared on logout or 401)."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    @property
    def token(self) -> Optional[str]:
        value = self._store.get(SESSION_TOKEN_KEY)
        if not value:
            return None
        return str(value)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def save(self, token: str) -> None:
        token = str(token or "").strip()
        if not token:
            raise ValueError("Session token must not be empty")
        self._store.set(SESSION_TOKEN_KEY, token)

    def clear(self) -> None:
        self._store.pop(SESSION_TOKEN_KEY)
