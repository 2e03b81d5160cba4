"""
Credential Flow Controller.

Owns the sign-in form: email/password login with a device fingerprint,
Google ID-token login, failure classification, and the "resend
verification email" affordance for accounts that never confirmed their
address.

States: ``idle → submitting → (error_shown | success_redirecting)``.
"""

from __future__ import annotations

from typing import Optional

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import (
    DATABASE_ERROR_CODE,
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_CONNECTIVITY_MESSAGE,
    LOGIN_REDIRECT_MESSAGE,
    SERVER_ERROR_MESSAGE,
    VERIFICATION_REQUIRED_CODE,
    AuthErrorCode,
    AuthResult,
)
from sensorwatch.models.enums import LoginState
from sensorwatch.navigation import Navigator
from sensorwatch.scheduling import Scheduler
from sensorwatch.guards import OperationGuard
from sensorwatch.services.api_client import ApiError, AuthApiClient, AuthApiError
from sensorwatch.services.base_controller import BaseController, start_session
from sensorwatch.services.fingerprint import DeviceFingerprinter
from sensorwatch.session_store import SessionStore

_VERIFICATION_HINTS: tuple[str, ...] = ("verify your email", "email before logging in")
_SERVER_HINTS: tuple[str, ...] = ("database", "server", "Can't reach")
_TOKENLESS_SUCCESS_MESSAGE: str = "Login successful! Please try again."


def classify_login_failure(
    message: Optional[str],
    code: Optional[str],
    transport_failed: bool = False,
) -> tuple[AuthErrorCode, str, bool]:
    """Map a failed login to ``(category, user message, offer resend)``.

    Invalid-credential failures always get the same generic text so the
    form never reveals whether the email exists.
    """
    text = message or "Login failed"
    needs_verification = code == VERIFICATION_REQUIRED_CODE or any(
        hint in text for hint in _VERIFICATION_HINTS
    )

    if transport_failed or code == DATABASE_ERROR_CODE:
        return AuthErrorCode.NETWORK_ERROR, LOGIN_CONNECTIVITY_MESSAGE, needs_verification

    if "Invalid" in text or "credentials" in text:
        category, user_message = AuthErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE
    elif any(hint in text for hint in _SERVER_HINTS):
        category, user_message = AuthErrorCode.SERVER_ERROR, SERVER_ERROR_MESSAGE
    else:
        category, user_message = AuthErrorCode.SERVER_REJECTED, f"Login failed: {text}"

    if needs_verification:
        category = AuthErrorCode.VERIFICATION_REQUIRED
    return category, user_message, needs_verification


class CredentialFlowController(BaseController):
    """Sign-in controller.

    Parameters
    ----------
    api:
        Remote auth client.
    store:
        Session token slot written on success.
    fingerprinter:
        Lazily computed device fingerprint sent with each login.
    scheduler:
        Schedules the post-login redirect.
    navigator:
        Target of the redirect.
    logger:
        Structured logger.
    redirect_delay_s:
        Pause between the success message and the dashboard redirect.
    """

    def __init__(
        self,
        api: AuthApiClient,
        store: SessionStore,
        fingerprinter: DeviceFingerprinter,
        scheduler: Scheduler,
        navigator: Navigator,
        logger: StructuredLogger,
        redirect_delay_s: float = 1.0,
    ) -> None:
        super().__init__(logger)
        self._api = api
        self._store = store
        self._fingerprinter = fingerprinter
        self._scheduler = scheduler
        self._navigator = navigator
        self._redirect_delay_s = redirect_delay_s

        self._login_guard = OperationGuard("login")
        self._resend_guard = OperationGuard("resend_verification")
        self._state: LoginState = LoginState.IDLE
        self._show_resend: bool = False

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoginState:
        with self._state_lock:
            return self._state

    @property
    def show_resend_verification(self) -> bool:
        """``True`` while the "resend verification email" action is offered."""
        with self._state_lock:
            return self._show_resend

    @property
    def is_submitting(self) -> bool:
        return self._login_guard.is_pending

    @property
    def is_resending(self) -> bool:
        return self._resend_guard.is_pending

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password."""
        email = email.strip()
        if not email or not password:
            return self._fail(AuthErrorCode.VALIDATION_ERROR, "Email and password are required")

        if not self._login_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            self._enter_submitting()
            try:
                response = self._api.login(email, password, self._fingerprinter.get())
            except ApiError as exc:
                return self._login_failed(exc.message, exc.code, email)
            except AuthApiError as exc:
                self._logger.warning(
                    "Login transport failure: %s", exc,
                    extra={"event": "LOGIN_NETWORK_ERROR"},
                )
                return self._login_failed(None, None, email, transport_failed=True)

            self._logger.info(
                "Login accepted for %s.", email,
                extra={"event": "LOGIN", "email": email},
            )
            return self._complete(response.token)
        finally:
            self._login_guard.finish()

    def google_login(self, credential: str) -> AuthResult:
        """Authenticate with a Google ID token."""
        if not credential:
            return self._fail(
                AuthErrorCode.VALIDATION_ERROR,
                "Google Sign-In is not available. Please refresh and try again.",
            )

        if not self._login_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            self._enter_submitting()
            try:
                response = self._api.google_auth(credential)
            except ApiError as exc:
                reason = exc.message or "Google login failed"
                self._logger.warning(
                    "Google login rejected: %s", reason,
                    extra={"event": "GOOGLE_LOGIN_FAILED"},
                )
                return self._fail(AuthErrorCode.SERVER_REJECTED, f"Google login failed: {reason}")
            except AuthApiError as exc:
                self._logger.warning(
                    "Google login transport failure: %s", exc,
                    extra={"event": "GOOGLE_LOGIN_FAILED"},
                )
                return self._fail(AuthErrorCode.NETWORK_ERROR, LOGIN_CONNECTIVITY_MESSAGE)

            self._logger.info("Google login accepted.", extra={"event": "GOOGLE_LOGIN"})
            return self._complete(response.token)
        finally:
            self._login_guard.finish()

    # ------------------------------------------------------------------
    # Resend verification
    # ------------------------------------------------------------------

    def resend_verification(self, email: str) -> AuthResult:
        """Ask the server to resend the account verification email."""
        email = email.strip()
        if not email:
            return self._fail(
                AuthErrorCode.VALIDATION_ERROR, "Please enter your email address first",
            )

        if not self._resend_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            self._set_message(None)
            try:
                self._api.resend_verification(email)
            except ApiError as exc:
                return self._fail(
                    AuthErrorCode.SERVER_REJECTED,
                    "Failed to resend verification email: "
                    f"{exc.message or 'Failed to resend verification email'}",
                )
            except AuthApiError:
                return self._fail(AuthErrorCode.NETWORK_ERROR, LOGIN_CONNECTIVITY_MESSAGE)

            self._logger.info(
                "Verification email resent to %s.", email,
                extra={"event": "VERIFICATION_RESENT", "email": email},
            )
            with self._state_lock:
                self._show_resend = False
            message = "Verification email sent! Please check your inbox."
            self._set_message(message, is_error=False)
            return AuthResult(success=True, message=message)
        finally:
            self._resend_guard.finish()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter_submitting(self) -> None:
        with self._state_lock:
            self._state = LoginState.SUBMITTING
            self._message = None
        self._notify()

    def _complete(self, token: Optional[str]) -> AuthResult:
        if not token:
            return self._fail(AuthErrorCode.MISSING_TOKEN, _TOKENLESS_SUCCESS_MESSAGE)

        failure = start_session(
            self._store, self._scheduler, self._navigator, token, self._redirect_delay_s,
        )
        if failure is not None:
            return self._fail(failure.error_code or AuthErrorCode.UNKNOWN_ERROR, failure.message)

        with self._state_lock:
            self._state = LoginState.SUCCESS_REDIRECTING
            self._show_resend = False
        self._set_message(LOGIN_REDIRECT_MESSAGE, is_error=False)
        return AuthResult(success=True, message=LOGIN_REDIRECT_MESSAGE, token_issued=True)

    def _login_failed(
        self,
        message: Optional[str],
        code: Optional[str],
        email: str,
        transport_failed: bool = False,
    ) -> AuthResult:
        category, user_message, offer_resend = classify_login_failure(
            message, code, transport_failed,
        )
        self._logger.warning(
            "Login failed for %s (%s).", email, category,
            extra={"event": "LOGIN_FAILED", "email": email, "error_code": code or ""},
        )
        with self._state_lock:
            self._show_resend = offer_resend
        return self._fail(category, user_message)

    def _fail(self, code: AuthErrorCode, message: Optional[str]) -> AuthResult:
        with self._state_lock:
            self._state = LoginState.ERROR_SHOWN
        self._set_message(message)
        return AuthResult.failure(code, message)
