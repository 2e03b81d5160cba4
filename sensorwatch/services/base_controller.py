"""
Base Flow Controller.

Minimal base class for the auth controllers: a logger, the currently
shown message, and a change hook the UI subscribes to.  Controllers are
driven from worker threads, so listeners must marshal onto the UI
thread themselves.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import AuthErrorCode, AuthResult
from sensorwatch.navigation import Navigator
from sensorwatch.scheduling import Scheduler
from sensorwatch.session_store import SessionStore

ChangeListener = Callable[[], None]

SESSION_SAVE_FAILED_MESSAGE: str = "Could not save your session. Please try again."


def start_session(
    store: SessionStore,
    scheduler: Scheduler,
    navigator: Navigator,
    token: str,
    redirect_delay_s: float,
) -> Optional[AuthResult]:
    """Persist *token* and schedule the dashboard redirect.

    Returns ``None`` on success, or the failure to report when the token
    could not be written (the dashboard guard would bounce straight back).
    """
    if not store.set(token):
        return AuthResult.failure(AuthErrorCode.UNKNOWN_ERROR, SESSION_SAVE_FAILED_MESSAGE)
    scheduler.call_later(redirect_delay_s, navigator.show_dashboard)
    return None


class BaseController:
    """Base class for all flow controllers."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._state_lock: threading.RLock = threading.RLock()
        self._message: Optional[str] = None
        self._message_is_error: bool = True
        self._listeners: list[ChangeListener] = []

    @property
    def message(self) -> Optional[str]:
        """Text the surface should currently display, if any."""
        with self._state_lock:
            return self._message

    @property
    def message_is_error(self) -> bool:
        """``False`` when ``message`` reports a success."""
        with self._state_lock:
            return self._message_is_error

    def subscribe(self, listener: ChangeListener) -> None:
        """Call *listener* after every observable state change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_message(self, message: Optional[str], is_error: bool = True) -> None:
        with self._state_lock:
            self._message = message
            self._message_is_error = is_error
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
