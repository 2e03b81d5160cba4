"""
Password-Reset Controller.

Three-step wizard reached from the sign-in form::

    closed → request_email → confirm_otp → set_password → closed

``confirm_otp_shape`` only checks that the code looks like six digits.
The server is the sole judge of whether the code is correct, and it
rules on that when the new password is submitted.  A wrong code is
therefore reported at the last step, not the second.
"""

from __future__ import annotations

from typing import Optional

from sensorwatch.guards import OperationGuard
from sensorwatch.logger import StructuredLogger
from sensorwatch.models.auth_models import (
    AUTH_SERVER_CONNECTIVITY_MESSAGE,
    AuthErrorCode,
    AuthResult,
)
from sensorwatch.models.enums import ResetStep
from sensorwatch.scheduling import Countdown, Scheduler
from sensorwatch.services.api_client import ApiError, AuthApiClient, AuthApiError
from sensorwatch.services.base_controller import BaseController
from sensorwatch.services.validators import (
    is_valid_email,
    validate_new_password,
    validate_otp,
)

INVALID_EMAIL_MESSAGE: str = "Please enter a valid email address"
REQUEST_FAILED_MESSAGE: str = "Failed to send reset code"
RESET_FAILED_MESSAGE: str = "Failed to reset password. Please try again."
RESEND_FAILED_MESSAGE: str = "Failed to resend code. Please try again."
REQUEST_CODE_FIRST_MESSAGE: str = "Please request a reset code first."
WIZARD_CLOSED_MESSAGE: str = "Open password reset to request a code."
RESET_SUCCESS_BANNER: str = (
    "Password reset successful! You can now log in with your new password."
)


class PasswordResetController(BaseController):
    """Forgot-password wizard.

    ``message`` carries the wizard's own errors; ``banner`` carries the
    success notice the sign-in form displays once the wizard has closed.
    """

    def __init__(
        self,
        api: AuthApiClient,
        scheduler: Scheduler,
        logger: StructuredLogger,
        resend_cooldown_s: int = 60,
        banner_duration_s: float = 5.0,
    ) -> None:
        super().__init__(logger)
        self._api = api
        self._scheduler = scheduler
        self._resend_cooldown_s = resend_cooldown_s
        self._banner_duration_s = banner_duration_s

        # Request and resend share a guard: both call forgot-password.
        self._request_guard = OperationGuard("forgot_password")
        self._reset_guard = OperationGuard("reset_password")
        self._cooldown = Countdown(scheduler)

        self._step: ResetStep = ResetStep.CLOSED
        self._email: str = ""
        self._otp: str = ""
        self._banner: Optional[str] = None
        self._banner_handle: Optional[object] = None
        # Bumped by close(); replies from an older generation are dropped.
        self._generation: int = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def step(self) -> ResetStep:
        with self._state_lock:
            return self._step

    @property
    def email(self) -> str:
        with self._state_lock:
            return self._email

    @property
    def otp(self) -> str:
        with self._state_lock:
            return self._otp

    @property
    def banner(self) -> Optional[str]:
        with self._state_lock:
            return self._banner

    @property
    def cooldown_remaining(self) -> int:
        return self._cooldown.remaining

    @property
    def is_busy(self) -> bool:
        return self._request_guard.is_pending or self._reset_guard.is_pending

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Enter the wizard at ``request_email``."""
        with self._state_lock:
            self._step = ResetStep.REQUEST_EMAIL
            self._message = None
        self._notify()

    def close(self) -> None:
        """Leave the wizard, discarding email, code and cooldown.

        Replies to requests still in flight are dropped when they land.
        """
        with self._state_lock:
            self._generation += 1
            self._step = ResetStep.CLOSED
            self._email = ""
            self._otp = ""
            self._message = None
        self._cooldown.cancel()
        self._request_guard.reset()
        self._reset_guard.reset()
        self._notify()

    def back(self) -> None:
        """Step back one screen; the entered code is discarded."""
        with self._state_lock:
            if self._step is ResetStep.SET_PASSWORD:
                self._step = ResetStep.CONFIRM_OTP
            elif self._step is ResetStep.CONFIRM_OTP:
                self._step = ResetStep.REQUEST_EMAIL
            else:
                return
            self._otp = ""
            self._message = None
        self._notify()

    # ------------------------------------------------------------------
    # Step 1: request a code
    # ------------------------------------------------------------------

    def request_reset(self, email: str) -> AuthResult:
        """Ask the server to mail a reset code to *email*."""
        if self.step is not ResetStep.REQUEST_EMAIL:
            return self._out_of_step("request_reset", WIZARD_CLOSED_MESSAGE)

        email = email.strip()
        self._set_message(None)
        if not is_valid_email(email):
            return self._fail(AuthErrorCode.VALIDATION_ERROR, INVALID_EMAIL_MESSAGE)

        if not self._request_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            generation = self._current_generation()
            failure = self._send_code(email, REQUEST_FAILED_MESSAGE)
            with self._state_lock:
                if generation != self._generation:
                    return self._stale("request_reset")
                if failure is None:
                    self._email = email
                    self._otp = ""
                    self._step = ResetStep.CONFIRM_OTP
            if failure is not None:
                return self._fail(failure.error_code, failure.message)

            self._logger.info(
                "Password reset code requested for %s.", email,
                extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
            )
            self._start_cooldown()
            self._set_message(None)
            return AuthResult(success=True)
        finally:
            self._request_guard.finish()

    # ------------------------------------------------------------------
    # Step 2: check the code's shape
    # ------------------------------------------------------------------

    def confirm_otp_shape(self, code: str) -> AuthResult:
        """Accept any six-digit code and move on; no network call."""
        if self.step is not ResetStep.CONFIRM_OTP:
            return self._out_of_step("confirm_otp_shape", REQUEST_CODE_FIRST_MESSAGE)

        check = validate_otp(code)
        if not check.is_valid:
            return self._fail(AuthErrorCode.VALIDATION_ERROR, check.error_message)

        with self._state_lock:
            self._otp = code
            self._step = ResetStep.SET_PASSWORD
            self._message = None
        self._notify()
        return AuthResult(success=True)

    # ------------------------------------------------------------------
    # Step 3: set the new password
    # ------------------------------------------------------------------

    def set_new_password(self, password: str, confirmation: str) -> AuthResult:
        """Submit email, code and new password; the server verifies the code here."""
        if self._reset_guard.is_pending:
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        with self._state_lock:
            ready = self._step is ResetStep.SET_PASSWORD and self._email and self._otp
        if not ready:
            return self._out_of_step("set_new_password", REQUEST_CODE_FIRST_MESSAGE)

        self._set_message(None)
        check = validate_new_password(password, confirmation)
        if not check.is_valid:
            return self._fail(AuthErrorCode.VALIDATION_ERROR, check.error_message)

        if not self._reset_guard.try_begin():
            return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

        try:
            with self._state_lock:
                email, otp, generation = self._email, self._otp, self._generation
            try:
                self._api.reset_password(email, otp, password, confirmation)
            except ApiError as exc:
                self._logger.warning(
                    "Password reset rejected for %s.", email,
                    extra={"event": "PASSWORD_RESET_FAILED", "email": email},
                )
                if generation != self._current_generation():
                    return self._stale("set_new_password")
                return self._fail(AuthErrorCode.SERVER_REJECTED, exc.message or RESET_FAILED_MESSAGE)
            except AuthApiError as exc:
                self._logger.warning(
                    "Password reset transport failure: %s", exc,
                    extra={"event": "PASSWORD_RESET_FAILED", "email": email},
                )
                if generation != self._current_generation():
                    return self._stale("set_new_password")
                return self._fail(AuthErrorCode.NETWORK_ERROR, AUTH_SERVER_CONNECTIVITY_MESSAGE)

            # The password has changed server-side either way.
            self._logger.info(
                "Password reset for %s.", email,
                extra={"event": "PASSWORD_RESET", "email": email},
            )
            if generation != self._current_generation():
                return self._stale("set_new_password")
            self.close()
            self._show_banner(RESET_SUCCESS_BANNER)
            return AuthResult(success=True, message=RESET_SUCCESS_BANNER)
        finally:
            self._reset_guard.finish()

    def resend_reset_otp(self) -> AuthResult:
        """Request another code for the stored email once the cooldown has run out."""
        with self._state_lock:
            ready = (
                self._step in (ResetStep.CONFIRM_OTP, ResetStep.SET_PASSWORD)
                and bool(self._email)
            )
        if not ready:
            return self._out_of_step("resend_reset_otp", REQUEST_CODE_FIRST_MESSAGE)

        if self._cooldown.remaining > 0:
            return AuthResult.failure(AuthErrorCode.COOLDOWN_ACTIVE)

        with self._request_guard.claim() as acquired:
            if not acquired:
                return AuthResult.failure(AuthErrorCode.DUPLICATE_SUBMISSION)

            self._set_message(None)
            with self._state_lock:
                email, generation = self._email, self._generation
            failure = self._send_code(email, RESEND_FAILED_MESSAGE)
            if generation != self._current_generation():
                return self._stale("resend_reset_otp")
            if failure is not None:
                return self._fail(failure.error_code, failure.message)

            self._logger.info(
                "Password reset code resent to %s.", email,
                extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
            )
            self._start_cooldown()
            return AuthResult(success=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _send_code(self, email: str, default_error: str) -> Optional[AuthResult]:
        """Call forgot-password; return the failure to report, or ``None``."""
        try:
            self._api.forgot_password(email)
        except ApiError as exc:
            return AuthResult.failure(AuthErrorCode.SERVER_REJECTED, exc.message or default_error)
        except AuthApiError as exc:
            self._logger.warning(
                "Reset code request transport failure: %s", exc,
                extra={"event": "PASSWORD_RESET_NETWORK_ERROR"},
            )
            return AuthResult.failure(AuthErrorCode.NETWORK_ERROR, AUTH_SERVER_CONNECTIVITY_MESSAGE)
        return None

    def _current_generation(self) -> int:
        with self._state_lock:
            return self._generation

    def _stale(self, operation: str) -> AuthResult:
        self._logger.debug(
            "Dropping %s reply; the wizard was closed meanwhile.", operation,
            extra={"event": "PASSWORD_RESET_STALE_REPLY"},
        )
        return AuthResult.failure(AuthErrorCode.STALE_RESPONSE)

    def _out_of_step(self, operation: str, message: str) -> AuthResult:
        self._logger.debug(
            "Ignoring %s at step %s.", operation, self.step,
            extra={"event": "PASSWORD_RESET_OUT_OF_STEP"},
        )
        return self._fail(AuthErrorCode.VALIDATION_ERROR, message)

    def _start_cooldown(self) -> None:
        self._cooldown.start(
            self._resend_cooldown_s,
            on_tick=lambda _remaining: self._notify(),
        )

    def _show_banner(self, text: str) -> None:
        with self._state_lock:
            if self._banner_handle is not None:
                self._scheduler.cancel(self._banner_handle)
            self._banner = text
            self._banner_handle = self._scheduler.call_later(
                self._banner_duration_s, self._clear_banner,
            )
        self._notify()

    def _clear_banner(self) -> None:
        with self._state_lock:
            self._banner = None
            self._banner_handle = None
        self._notify()

    def _fail(self, code: AuthErrorCode, message: Optional[str]) -> AuthResult:
        self._set_message(message)
        return AuthResult.failure(code, message)
