"""
Session Token Store.

The session token is the only state shared between the auth
controllers, the session guard and the dashboard.  Every component
receives the store through its constructor instead of reaching for
ambient storage.

Usage::

    from sensorwatch.session_store import InMemorySessionStore

    store = InMemorySessionStore()
    store.set("opaque-token")
    token = store.get()
    store.clear()

The application wires ``EncryptedSessionStore``
(``sensorwatch.services.session_cache``), which persists the same slot
to disk.
"""

from __future__ import annotations

import threading
from typing import Optional, Protocol

# Fixed key of the single durable token slot.
SESSION_TOKEN_KEY: str = "auth-token"


class SessionStore(Protocol):
    """Single-slot session token storage."""

    def get(self) -> Optional[str]:
        """Return the stored token, or ``None`` when logged out."""
        ...

    def set(self, token: str) -> bool:
        """Overwrite the slot with *token*; ``False`` if it could not be stored."""
        ...

    def clear(self) -> None:
        """Empty the slot.  Safe to call when nothing is stored."""
        ...


class InMemorySessionStore:
    """Process-local ``SessionStore``; nothing survives a restart."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._token: Optional[str] = token or None

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: str) -> bool:
        with self._lock:
            self._token = token
            return True

    def clear(self) -> None:
        with self._lock:
            self._token = None

    @property
    def has_token(self) -> bool:
        """``True`` when a token is present (not necessarily valid)."""
        with self._lock:
            return self._token is not None
