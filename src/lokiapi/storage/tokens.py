"""Per-server bearer token storage."""

from __future__ import annotations

import threading
from typing import Protocol


class TokenStore(Protocol):
    """Key-value store holding at most one auth token per server URL.

    Implementations provide their own per-key consistency; the client never
    locks around them.
    """

    def get_auth_token(self, server: str) -> str | None:
        """Return the cached token for ``server``, if any."""
        ...

    def set_auth_token(self, server: str, token: str | None) -> None:
        """Cache ``token`` for ``server``; ``None`` clears the entry."""
        ...


class InMemoryTokenStore:
    """Process-local token store for callers without persistent storage."""

    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_auth_token(self, server: str) -> str | None:
        with self._lock:
            return self._tokens.get(server)

    def set_auth_token(self, server: str, token: str | None) -> None:
        with self._lock:
            if token is None:
                self._tokens.pop(server, None)
            else:
                self._tokens[server] = token
