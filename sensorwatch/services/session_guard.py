"""
Session Guard.

Runs when a surface loads and decides, from the stored session token and
the remote verifier, whether the user belongs on the login surface or on
the dashboard.

=================  ===================  ===========================
Stored token       Login surface        Dashboard surface
=================  ===================  ===========================
absent             stay                 redirect to login
verified           redirect to dash     stay, populate identity
rejected / error   discard token, stay  discard token, redirect
=================  ===================  ===========================
"""

from __future__ import annotations

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import AuthErrorCode, AuthResult
from sensorwatch.models.enums import Surface
from sensorwatch.navigation import Navigator
from sensorwatch.services.api_client import ApiError, AuthApiClient, AuthApiError
from sensorwatch.session_store import SessionStore


class SessionGuard:
    """Validates the stored session token for a surface.

    ``check()`` blocks on the network; the shell calls it from a worker
    thread so rendering is never held up.  Navigation happens inside
    ``check()`` once the outcome is known.
    """

    def __init__(
        self,
        api: AuthApiClient,
        store: SessionStore,
        navigator: Navigator,
        logger: StructuredLogger,
    ) -> None:
        self._api = api
        self._store = store
        self._navigator = navigator
        self._logger = logger

    def check(self, surface: Surface) -> AuthResult:
        """Resolve the session for *surface*.

        Returns ``success=True`` with ``user`` when the stored token was
        verified; otherwise ``success=False``.
        """
        token = self._store.get()
        if not token:
            if surface is Surface.DASHBOARD:
                self._navigator.show_login()
            return AuthResult.failure(AuthErrorCode.MISSING_TOKEN)

        try:
            user = self._api.verify_token(token)
        except AuthApiError as exc:
            self._store.clear()
            if isinstance(exc, ApiError):
                code = AuthErrorCode.SERVER_REJECTED
                self._logger.info(
                    "Stored session rejected (HTTP %d); token discarded.", exc.status,
                    extra={"event": "SESSION_REJECTED"},
                )
            else:
                code = AuthErrorCode.NETWORK_ERROR
                self._logger.warning(
                    "Session verification failed: %s; token discarded.", exc,
                    extra={"event": "SESSION_CHECK_FAILED"},
                )
            if surface is Surface.DASHBOARD:
                self._navigator.show_login()
            return AuthResult.failure(code)

        self._logger.info(
            "Session verified for %s.", user.email or "unknown",
            extra={"event": "SESSION_VERIFIED", "surface": surface.value},
        )
        if surface is Surface.LOGIN:
            self._navigator.show_dashboard()
        return AuthResult(success=True, user=user)
