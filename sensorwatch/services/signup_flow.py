"""
Signup/OTP Controller.

Two-phase account creation:

1. ``collecting_info``: the form is validated locally, then submitted.
   The server mails a one-time code and answers with a short-lived
   ``signupToken`` (the signup challenge).
2. ``otp_pending``: the user enters the six-digit code; the server
   checks code and challenge together and may issue a session token.

A resend cooldown gates re-requesting the code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sensorwatch.guards import OperationGuard
from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import (
    AUTH_SERVER_CONNECTIVITY_MESSAGE,
    DUPLICATE_ACCOUNT_MESSAGE,
    AuthErrorCode,
    AuthResult,
)
from sensorwatch.models.enums import SignupPhase
from sensorwatch.navigation import Navigator
from sensorwatch.scheduling import Countdown, Scheduler
from sensorwatch.services.api_client import ApiError, AuthApiClient, AuthApiError
from sensorwatch.services.base_controller import BaseController, start_session
from sensorwatch.services.validators import validate_otp, validate_signup
from sensorwatch.session_store import SessionStore

_DUPLICATE_HINTS: tuple[str, ...] = ("already exists", "User already")

INITIATE_FAILED_MESSAGE: str = "Failed to initiate signup. Please try again."
ACCOUNT_CREATED_MESSAGE: str = "Account created successfully! Redirecting..."
ACCOUNT_CREATED_LOGIN_MESSAGE: str = "Account created! Please log in."
VERIFY_FAILED_MESSAGE: str = "Verification failed. Please try again."
CODE_RESENT_MESSAGE: str = "Verification code resent! Please check your email."
RESEND_FAILED_MESSAGE: str = "Failed to resend code. Please try again."


@dataclass(frozen=True)
class SignupChallenge:
    """Fields captured at submit time, replayed by ``resend_otp``."""

    name: str
    email: str
    password: str
    retype_password: str
    signup_token: str

    def __repr__(self) -> str:
        return f"SignupChallenge(email={self.email!r})"


class SignupController(BaseController):
    """Controller for signup and email OTP verification."""

    def __init__(
        self,
        api: AuthApiClient,
        store: SessionStore,
        scheduler: Scheduler,
        navigator: Navigator,
        logger: StructuredLogger,
        resend_cooldown_s: int = 60,
        redirect_delay_s: float = 1.0,
        login_fallback_delay_s: float = 2.0,
    ) -> None:
        super().__init__(logger)
        self._api = api
        self._store = store
        self._scheduler = scheduler
        self._navigator = navigator
        self._resend_cooldown_s = resend_cooldown_s
        self._redirect_delay_s = redirect_delay_s
        self._login_fallback_delay_s = login_fallback_delay_s

        # Submit and resend share one guard: both hit the signup endpoint.
        self._submit_guard = OperationGuard("signup")
        self._verify_guard = OperationGuard("signup_verify")
        self._cooldown = Countdown(scheduler)

        self._phase: SignupPhase = SignupPhase.COLLECTING_INFO
        self._challenge: Optional[SignupChallenge] = None
        self._otp_code: str = ""
        self._fallback_handle: Optional[object] = None
        # Bumped by reset(); replies from an older generation are dropped.
        self._generation: int = 0

    @property
    def phase(self) -> SignupPhase:
        with self._state_lock:
            return self._phase

    @property
    def otp_code(self) -> str:
        """Code last submitted for verification; emptied when the server rejects it."""
        with self._state_lock:
            return self._otp_code

    @property
    def email(self) -> Optional[str]:
        with self._state_lock:
            return self._challenge.email if self._challenge else None

    @property
    def cooldown_remaining(self) -> int:
        return self._cooldown.remaining

    @property
    def is_submitting(self) -> bool:
        return self._submit_guard.is_pending

    @property
    def is_verifying(self) -> bool:
        return self._verify_guard.is_pending

    # ------------------------------------------------------------------
    # Phase 1: collect and submit
    # ------------------------------------------------------------------

    def submit(self, name: str, email: str, password: str, confirmation: str) -> AuthResult:
        """Validate the form and request a verification code."""
        if not self._submit_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            generation = self._current_generation()
            self._set_message(None)
            check = validate_signup(name, email, password, confirmation)
            if not check.is_valid:
                return self._fail(AuthErrorCode.VALIDATION_ERROR, check.error_message)

            try:
                response = self._api.signup(name, email, password, confirmation)
            except ApiError as exc:
                if generation != self._current_generation():
                    return self._stale("submit")
                return self._signup_rejected(exc.message or "Signup failed", email)
            except AuthApiError as exc:
                self._logger.warning(
                    "Signup transport failure: %s", exc,
                    extra={"event": "SIGNUP_NETWORK_ERROR"},
                )
                if generation != self._current_generation():
                    return self._stale("submit")
                return self._fail(AuthErrorCode.NETWORK_ERROR, AUTH_SERVER_CONNECTIVITY_MESSAGE)

            if not response.signup_token:
                if generation != self._current_generation():
                    return self._stale("submit")
                return self._fail(AuthErrorCode.MISSING_TOKEN, INITIATE_FAILED_MESSAGE)

            with self._state_lock:
                if generation != self._generation:
                    return self._stale("submit")
                self._challenge = SignupChallenge(
                    name=name,
                    email=email,
                    password=password,
                    retype_password=confirmation,
                    signup_token=response.signup_token,
                )
                self._phase = SignupPhase.OTP_PENDING
                self._otp_code = ""
            self._start_cooldown()
            self._logger.info(
                "Signup code sent to %s.", email,
                extra={"event": "SIGNUP_OTP_SENT", "email": email},
            )
            self._notify()
            return AuthResult(success=True)
        finally:
            self._submit_guard.finish()

    # ------------------------------------------------------------------
    # Phase 2: verify
    # ------------------------------------------------------------------

    def verify_otp(self, code: str) -> AuthResult:
        """Submit the emailed code together with the signup challenge."""
        if self._verify_guard.is_pending:
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        check = validate_otp(code)
        if not check.is_valid:
            return self._fail(AuthErrorCode.VALIDATION_ERROR, check.error_message)

        with self._state_lock:
            challenge, generation = self._challenge, self._generation
        if challenge is None:
            return self._fail(AuthErrorCode.MISSING_TOKEN, INITIATE_FAILED_MESSAGE)

        if not self._verify_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            with self._state_lock:
                self._otp_code = code
            self._set_message(None)
            try:
                response = self._api.verify_signup(challenge.email, code, challenge.signup_token)
            except ApiError as exc:
                if generation != self._current_generation():
                    return self._stale("verify_otp")
                return self._verify_failed(
                    AuthErrorCode.SERVER_REJECTED, exc.message or VERIFY_FAILED_MESSAGE,
                )
            except AuthApiError as exc:
                self._logger.warning(
                    "Signup verification transport failure: %s", exc,
                    extra={"event": "SIGNUP_NETWORK_ERROR"},
                )
                if generation != self._current_generation():
                    return self._stale("verify_otp")
                return self._verify_failed(
                    AuthErrorCode.NETWORK_ERROR, AUTH_SERVER_CONNECTIVITY_MESSAGE,
                )

            self._logger.info(
                "Account created for %s.", challenge.email,
                extra={"event": "SIGNUP_VERIFIED", "email": challenge.email},
            )
            if generation != self._current_generation():
                return self._stale("verify_otp")

            if not response.token:
                self._set_message(ACCOUNT_CREATED_LOGIN_MESSAGE, is_error=False)
                with self._state_lock:
                    self._fallback_handle = self._scheduler.call_later(
                        self._login_fallback_delay_s, self._return_to_login,
                    )
                return AuthResult(success=True, message=ACCOUNT_CREATED_LOGIN_MESSAGE)

            failure = start_session(
                self._store, self._scheduler, self._navigator,
                response.token, self._redirect_delay_s,
            )
            if failure is not None:
                return self._fail(failure.error_code or AuthErrorCode.UNKNOWN_ERROR, failure.message)

            self._cooldown.cancel()
            self._set_message(ACCOUNT_CREATED_MESSAGE, is_error=False)
            return AuthResult(success=True, message=ACCOUNT_CREATED_MESSAGE, token_issued=True)
        finally:
            self._verify_guard.finish()

    def resend_otp(self) -> AuthResult:
        """Repeat the signup request to obtain a fresh code and challenge."""
        if self._cooldown.remaining > 0:
            return AuthResult.failure(AuthErrorCode.COOLDOWN_ACTIVE)

        with self._state_lock:
            challenge, generation = self._challenge, self._generation
        if challenge is None:
            return self._fail(AuthErrorCode.MISSING_TOKEN, INITIATE_FAILED_MESSAGE)

        if not self._submit_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            self._set_message(None)
            try:
                response = self._api.signup(
                    challenge.name, challenge.email,
                    challenge.password, challenge.retype_password,
                )
            except ApiError as exc:
                if generation != self._current_generation():
                    return self._stale("resend_otp")
                return self._fail(AuthErrorCode.SERVER_REJECTED, exc.message or RESEND_FAILED_MESSAGE)
            except AuthApiError:
                if generation != self._current_generation():
                    return self._stale("resend_otp")
                return self._fail(AuthErrorCode.NETWORK_ERROR, AUTH_SERVER_CONNECTIVITY_MESSAGE)

            if not response.signup_token:
                if generation != self._current_generation():
                    return self._stale("resend_otp")
                return self._fail(AuthErrorCode.MISSING_TOKEN, RESEND_FAILED_MESSAGE)

            with self._state_lock:
                if generation != self._generation:
                    return self._stale("resend_otp")
                self._challenge = SignupChallenge(
                    name=challenge.name,
                    email=challenge.email,
                    password=challenge.password,
                    retype_password=challenge.retype_password,
                    signup_token=response.signup_token,
                )
            self._start_cooldown()
            self._logger.info(
                "Signup code resent to %s.", challenge.email,
                extra={"event": "SIGNUP_OTP_RESENT", "email": challenge.email},
            )
            self._set_message(CODE_RESENT_MESSAGE, is_error=False)
            return AuthResult(success=True, message=CODE_RESENT_MESSAGE)
        finally:
            self._submit_guard.finish()

    def reset(self) -> None:
        """Return to ``collecting_info``, discarding code, challenge and cooldown.

        Replies to requests still in flight are dropped when they land.
        """
        with self._state_lock:
            self._generation += 1
            self._phase = SignupPhase.COLLECTING_INFO
            self._challenge = None
            self._otp_code = ""
            self._message = None
            if self._fallback_handle is not None:
                self._scheduler.cancel(self._fallback_handle)
                self._fallback_handle = None
        self._cooldown.cancel()
        self._submit_guard.reset()
        self._verify_guard.reset()
        self._notify()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _start_cooldown(self) -> None:
        self._cooldown.start(
            self._resend_cooldown_s,
            on_tick=lambda _remaining: self._notify(),
        )

    def _current_generation(self) -> int:
        with self._state_lock:
            return self._generation

    def _stale(self, operation: str) -> AuthResult:
        self._logger.debug(
            "Dropping %s reply; the signup form was reset meanwhile.", operation,
            extra={"event": "SIGNUP_STALE_REPLY"},
        )
        return AuthResult.failure(AuthErrorCode.STALE_RESPONSE)

    def _return_to_login(self) -> None:
        with self._state_lock:
            self._fallback_handle = None
        self.reset()
        self._navigator.show_login()

    def _signup_rejected(self, reason: str, email: str) -> AuthResult:
        self._logger.warning(
            "Signup rejected for %s: %s", email, reason,
            extra={"event": "SIGNUP_FAILED", "email": email},
        )
        if any(hint in reason for hint in _DUPLICATE_HINTS):
            return self._fail(AuthErrorCode.EMAIL_ALREADY_EXISTS, DUPLICATE_ACCOUNT_MESSAGE)
        return self._fail(AuthErrorCode.SERVER_REJECTED, f"Signup failed: {reason}")

    def _verify_failed(self, code: AuthErrorCode, message: str) -> AuthResult:
        with self._state_lock:
            self._otp_code = ""
        return self._fail(code, message)

    def _fail(self, code: AuthErrorCode, message: Optional[str]) -> AuthResult:
        self._set_message(message)
        return AuthResult.failure(code, message)
