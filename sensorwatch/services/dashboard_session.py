"""
Dashboard Session.

Backs the dashboard surface: confirms the session on load, exposes the
signed-in identity and display preferences, and signs the user out.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import AuthResult
from sensorwatch.models.enums import Surface
from sensorwatch.models.user import User, UserPreferences
from sensorwatch.navigation import Navigator
from sensorwatch.services.api_client import AuthApiClient, AuthApiError
from sensorwatch.services.base_controller import BaseController
from sensorwatch.services.session_guard import SessionGuard
from sensorwatch.session_store import SessionStore


class DashboardSession(BaseController):
    """Identity and preferences of the signed-in user."""

    def __init__(
        self,
        api: AuthApiClient,
        store: SessionStore,
        guard: SessionGuard,
        navigator: Navigator,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._api = api
        self._store = store
        self._guard = guard
        self._navigator = navigator
        self._user: Optional[User] = None
        self._preferences: UserPreferences = UserPreferences()

    @property
    def user(self) -> Optional[User]:
        with self._state_lock:
            return self._user

    @property
    def preferences(self) -> UserPreferences:
        with self._state_lock:
            return self._preferences

    @property
    def display_name(self) -> str:
        """Preferred username if set, else the email's local part."""
        with self._state_lock:
            if self._preferences.username:
                return self._preferences.username
            return self._user.display_name if self._user else "User"

    def load(self) -> AuthResult:
        """Verify the session, then fetch preferences.  Blocks on the network."""
        result = self._guard.check(Surface.DASHBOARD)
        if not result.success:
            with self._state_lock:
                self._user = None
            self._notify()
            return result

        with self._state_lock:
            self._user = result.user
        self._notify()

        token = self._store.get()
        if token:
            self._load_preferences(token)
        return result

    def logout(self) -> None:
        """Forget the session token and return to the login surface."""
        with self._state_lock:
            email = self._user.email if self._user else None
            self._user = None
            self._preferences = UserPreferences()
        self._store.clear()
        self._logger.info(
            "User signed out.", extra={"event": "LOGOUT", "email": email or ""},
        )
        self._notify()
        self._navigator.show_login()

    def _load_preferences(self, token: str) -> None:
        try:
            payload = self._api.get_user_preferences(token)
            preferences = UserPreferences.from_server(payload)
        except (AuthApiError, ValidationError) as exc:
            self._logger.warning(
                "Failed to load user preferences, keeping defaults: %s", exc,
                extra={"event": "PREFERENCES_LOAD_FAILED"},
            )
            return

        with self._state_lock:
            self._preferences = preferences
        self._notify()
