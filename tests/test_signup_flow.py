"""Tests for the two-phase signup controller."""

from __future__ import annotations

import threading

import pytest

from sensorwatch.models.api_models import SignupResponse, TokenResponse
from sensorwatch.models.auth_models import (
    AUTH_SERVER_CONNECTIVITY_MESSAGE,
    DUPLICATE_ACCOUNT_MESSAGE,
    AuthErrorCode,
)
from sensorwatch.models.enums import SignupPhase
from sensorwatch.services.api_client import ApiError, NetworkError
from sensorwatch.services.signup_flow import (
    ACCOUNT_CREATED_LOGIN_MESSAGE,
    ACCOUNT_CREATED_MESSAGE,
    CODE_RESENT_MESSAGE,
    INITIATE_FAILED_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    SignupController,
)

FORM = ("Jordan", "jordan@example.com", "Abcdef12", "Abcdef12")


@pytest.fixture
def controller(api, store, scheduler, navigator, logger) -> SignupController:
    return SignupController(
        api, store, scheduler, navigator, logger,
        resend_cooldown_s=60, redirect_delay_s=1.0, login_fallback_delay_s=2.0,
    )


@pytest.fixture
def pending(controller, api) -> SignupController:
    """Controller already in ``otp_pending`` with challenge ``chal-1``."""
    api.signup.return_value = SignupResponse(signup_token="chal-1")
    assert controller.submit(*FORM).success
    api.signup.reset_mock()
    return controller


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("form", "expected"),
    [
        (("J", "jordan@example.com", "Abcdef12", "Abcdef12"), "Name must be at least 2 characters"),
        (("Jordan", "jordan@", "Abcdef12", "Abcdef12"), "Valid email is required"),
        (("Jordan", "jordan@example.com", "Abc12", "Abc12"), "Password must be at least 8 characters"),
        (("Jordan", "jordan@example.com", "Abcdef12", "Abcdef21"), "Passwords do not match"),
        (("Jordan", "jordan@example.com", "abcdef12", "abcdef12"),
         "Password must contain uppercase, lowercase, and numbers"),
    ],
)
def test_invalid_form_is_rejected_locally(controller, api, form, expected):
    result = controller.submit(*form)

    assert result.error_code is AuthErrorCode.VALIDATION_ERROR
    assert controller.message == expected
    assert controller.phase is SignupPhase.COLLECTING_INFO
    api.signup.assert_not_called()


def test_submit_enters_otp_phase_and_starts_cooldown(controller, api, scheduler, logger):
    api.signup.return_value = SignupResponse(signup_token="chal-1")

    result = controller.submit(*FORM)

    assert result.success is True
    api.signup.assert_called_once_with(*FORM)
    assert controller.phase is SignupPhase.OTP_PENDING
    assert controller.email == "jordan@example.com"
    assert controller.cooldown_remaining == 60
    assert logger.info.call_args.kwargs["extra"]["event"] == "SIGNUP_OTP_SENT"

    scheduler.advance(15)
    assert controller.cooldown_remaining == 45


def test_submit_without_challenge_token_stays_on_form(controller, api):
    api.signup.return_value = SignupResponse(signup_token=None)

    result = controller.submit(*FORM)

    assert result.error_code is AuthErrorCode.MISSING_TOKEN
    assert controller.message == INITIATE_FAILED_MESSAGE
    assert controller.phase is SignupPhase.COLLECTING_INFO


@pytest.mark.parametrize("server_text", ["User already exists", "An account already exists"])
def test_duplicate_account(controller, api, server_text):
    api.signup.side_effect = ApiError(server_text, status=409)

    result = controller.submit(*FORM)

    assert result.error_code is AuthErrorCode.EMAIL_ALREADY_EXISTS
    assert controller.message == DUPLICATE_ACCOUNT_MESSAGE


def test_other_rejections_are_prefixed(controller, api):
    api.signup.side_effect = ApiError("Signups are closed", status=403)

    controller.submit(*FORM)

    assert controller.message == "Signup failed: Signups are closed"


def test_rejection_without_text_uses_default(controller, api):
    api.signup.side_effect = ApiError(None, status=500)

    controller.submit(*FORM)

    assert controller.message == "Signup failed: Signup failed"


def test_submit_network_failure(controller, api):
    api.signup.side_effect = NetworkError("refused")

    result = controller.submit(*FORM)

    assert result.error_code is AuthErrorCode.NETWORK_ERROR
    assert controller.message == AUTH_SERVER_CONNECTIVITY_MESSAGE
    assert controller.phase is SignupPhase.COLLECTING_INFO


def test_double_submit_creates_one_challenge(controller, api, blocking_call):
    entered, release, side_effect = blocking_call(SignupResponse(signup_token="chal-1"))
    api.signup.side_effect = side_effect

    worker = threading.Thread(target=controller.submit, args=FORM)
    worker.start()
    assert entered.wait(timeout=5)

    duplicate = controller.submit(*FORM)
    release.set()
    worker.join(timeout=5)

    assert duplicate.error_code is AuthErrorCode.DUPLICATE_SUBMISSION
    assert api.signup.call_count == 1
    assert controller.phase is SignupPhase.OTP_PENDING


# ---------------------------------------------------------------------------
# Resend
# ---------------------------------------------------------------------------

def test_resend_is_a_no_op_during_cooldown(pending, api, scheduler):
    scheduler.advance(15)

    result = pending.resend_otp()

    assert result.error_code is AuthErrorCode.COOLDOWN_ACTIVE
    assert result.is_suppressed
    api.signup.assert_not_called()
    assert pending.cooldown_remaining == 45


def test_resend_after_cooldown_replaces_challenge(pending, api, scheduler):
    scheduler.advance(60)
    assert pending.cooldown_remaining == 0
    api.signup.return_value = SignupResponse(signup_token="chal-2")

    result = pending.resend_otp()

    assert result.success is True
    api.signup.assert_called_once_with(*FORM)
    assert pending.message == CODE_RESENT_MESSAGE
    assert pending.message_is_error is False
    assert pending.cooldown_remaining == 60

    api.verify_signup.return_value = TokenResponse(token="tok")
    pending.verify_otp("123456")
    api.verify_signup.assert_called_once_with("jordan@example.com", "123456", "chal-2")


def test_resend_failure_keeps_old_challenge(pending, api, scheduler):
    scheduler.advance(60)
    api.signup.side_effect = ApiError(None, status=500)

    pending.resend_otp()

    assert pending.message == "Failed to resend code. Please try again."
    assert pending.cooldown_remaining == 0
    api.verify_signup.return_value = TokenResponse(token="tok")
    pending.verify_otp("123456")
    assert api.verify_signup.call_args.args[2] == "chal-1"


def test_resend_without_challenge(controller, api):
    result = controller.resend_otp()

    assert result.error_code is AuthErrorCode.MISSING_TOKEN
    api.signup.assert_not_called()


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("code", ["12345", "abcdef", "1234567", ""])
def test_malformed_code_is_rejected_locally(pending, api, code):
    result = pending.verify_otp(code)

    assert result.error_code is AuthErrorCode.VALIDATION_ERROR
    assert pending.message == "Please enter a valid 6-digit code"
    api.verify_signup.assert_not_called()


def test_verify_without_challenge(controller, api):
    result = controller.verify_otp("123456")

    assert result.error_code is AuthErrorCode.MISSING_TOKEN
    assert controller.message == INITIATE_FAILED_MESSAGE
    api.verify_signup.assert_not_called()


def test_verify_with_token_starts_session(pending, api, store, scheduler, navigator, logger):
    api.verify_signup.return_value = TokenResponse(token="tok-1")

    result = pending.verify_otp("123456")

    assert result.token_issued is True
    assert store.get() == "tok-1"
    assert pending.message == ACCOUNT_CREATED_MESSAGE
    assert pending.cooldown_remaining == 0
    assert logger.info.call_args_list[-1].kwargs["extra"]["event"] == "SIGNUP_VERIFIED"

    scheduler.advance(1.0)
    navigator.show_dashboard.assert_called_once_with()


def test_verify_without_session_token_returns_to_login(pending, api, store, scheduler, navigator):
    api.verify_signup.return_value = TokenResponse(token=None)

    result = pending.verify_otp("123456")

    assert result.success is True
    assert result.token_issued is False
    assert store.get() is None
    assert pending.message == ACCOUNT_CREATED_LOGIN_MESSAGE

    scheduler.advance(1.5)
    navigator.show_login.assert_not_called()
    scheduler.advance(0.5)
    navigator.show_login.assert_called_once_with()
    navigator.show_dashboard.assert_not_called()
    assert pending.phase is SignupPhase.COLLECTING_INFO
    assert pending.email is None


def test_rejected_code_is_cleared(pending, api):
    api.verify_signup.side_effect = ApiError("Invalid or expired code", status=400)

    result = pending.verify_otp("654321")

    assert result.error_code is AuthErrorCode.SERVER_REJECTED
    assert pending.message == "Invalid or expired code"
    assert pending.otp_code == ""
    assert pending.phase is SignupPhase.OTP_PENDING


def test_rejected_code_without_text(pending, api):
    api.verify_signup.side_effect = ApiError(None, status=400)

    pending.verify_otp("654321")

    assert pending.message == VERIFY_FAILED_MESSAGE


def test_verify_network_failure(pending, api):
    api.verify_signup.side_effect = NetworkError("refused")

    result = pending.verify_otp("654321")

    assert result.error_code is AuthErrorCode.NETWORK_ERROR
    assert pending.message == AUTH_SERVER_CONNECTIVITY_MESSAGE
    assert pending.otp_code == ""


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

def test_reset_discards_challenge_and_cooldown(pending, scheduler):
    pending.reset()

    assert pending.phase is SignupPhase.COLLECTING_INFO
    assert pending.email is None
    assert pending.cooldown_remaining == 0
    assert pending.message is None
    assert scheduler.pending == 0


def test_signup_reply_after_reset_is_dropped(controller, api, scheduler, blocking_call):
    entered, release, side_effect = blocking_call(SignupResponse(signup_token="chal-1"))
    api.signup.side_effect = side_effect
    results = []

    worker = threading.Thread(target=lambda: results.append(controller.submit(*FORM)))
    worker.start()
    assert entered.wait(timeout=5)
    controller.reset()
    release.set()
    worker.join(timeout=5)

    assert results[0].error_code is AuthErrorCode.STALE_RESPONSE
    assert controller.phase is SignupPhase.COLLECTING_INFO
    assert controller.email is None
    assert controller.cooldown_remaining == 0
    assert scheduler.pending == 0


def test_verification_reply_after_reset_starts_no_session(
    pending, api, store, scheduler, navigator, blocking_call,
):
    entered, release, side_effect = blocking_call(TokenResponse(token="tok-1"))
    api.verify_signup.side_effect = side_effect

    worker = threading.Thread(target=pending.verify_otp, args=("123456",))
    worker.start()
    assert entered.wait(timeout=5)
    pending.reset()
    release.set()
    worker.join(timeout=5)

    assert store.get() is None
    assert pending.message is None
    scheduler.advance(2.0)
    navigator.show_dashboard.assert_not_called()
    navigator.show_login.assert_not_called()


def test_resend_reply_after_reset_is_dropped(pending, api, scheduler, blocking_call):
    scheduler.advance(60)
    entered, release, side_effect = blocking_call(SignupResponse(signup_token="chal-2"))
    api.signup.side_effect = side_effect

    worker = threading.Thread(target=pending.resend_otp)
    worker.start()
    assert entered.wait(timeout=5)
    pending.reset()
    release.set()
    worker.join(timeout=5)

    assert pending.email is None
    assert pending.cooldown_remaining == 0
    assert pending.message is None


# ---------------------------------------------------------------------------
# Concurrent submissions
# ---------------------------------------------------------------------------

def test_double_verify_calls_server_once(pending, api, blocking_call):
    entered, release, side_effect = blocking_call(TokenResponse(token="tok-1"))
    api.verify_signup.side_effect = side_effect

    worker = threading.Thread(target=pending.verify_otp, args=("123456",))
    worker.start()
    assert entered.wait(timeout=5)
    duplicate = pending.verify_otp("123456")
    release.set()
    worker.join(timeout=5)

    assert duplicate.error_code is AuthErrorCode.DUPLICATE_SUBMISSION
    assert api.verify_signup.call_count == 1


def test_resend_while_submit_in_flight_is_refused(pending, api, scheduler, blocking_call):
    scheduler.advance(60)
    entered, release, side_effect = blocking_call(SignupResponse(signup_token="chal-2"))
    api.signup.side_effect = side_effect

    worker = threading.Thread(target=pending.submit, args=FORM)
    worker.start()
    assert entered.wait(timeout=5)
    duplicate = pending.resend_otp()
    release.set()
    worker.join(timeout=5)

    assert duplicate.error_code is AuthErrorCode.DUPLICATE_SUBMISSION
    assert api.signup.call_count == 1
