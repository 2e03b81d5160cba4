"""Tests for the sign-in controller."""

from __future__ import annotations

import threading

import pytest

from sensorwatch.models.auth_models import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_CONNECTIVITY_MESSAGE,
    LOGIN_REDIRECT_MESSAGE,
    SERVER_ERROR_MESSAGE,
    AuthErrorCode,
)
from sensorwatch.models.api_models import TokenResponse
from sensorwatch.models.enums import LoginState
from sensorwatch.services.api_client import ApiError, NetworkError, ResponseParseError
from sensorwatch.services.base_controller import SESSION_SAVE_FAILED_MESSAGE
from sensorwatch.services.credential_flow import (
    CredentialFlowController,
    classify_login_failure,
)


@pytest.fixture
def controller(api, store, fingerprinter, scheduler, navigator, logger) -> CredentialFlowController:
    return CredentialFlowController(
        api, store, fingerprinter, scheduler, navigator, logger, redirect_delay_s=1.0,
    )


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("message", "code", "transport", "expected_code", "expected_message", "resend"),
    [
        ("Invalid credentials", None, False,
         AuthErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE, False),
        ("Bad credentials supplied", None, False,
         AuthErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE, False),
        ("Can't reach database server", None, False,
         AuthErrorCode.SERVER_ERROR, SERVER_ERROR_MESSAGE, False),
        ("Account locked", None, False,
         AuthErrorCode.SERVER_REJECTED, "Login failed: Account locked", False),
        (None, None, False,
         AuthErrorCode.SERVER_REJECTED, "Login failed: Login failed", False),
        ("anything", "DATABASE_ERROR", False,
         AuthErrorCode.NETWORK_ERROR, LOGIN_CONNECTIVITY_MESSAGE, False),
        (None, None, True,
         AuthErrorCode.NETWORK_ERROR, LOGIN_CONNECTIVITY_MESSAGE, False),
        ("Please verify your email", "VERIFICATION_REQUIRED", False,
         AuthErrorCode.VERIFICATION_REQUIRED, "Login failed: Please verify your email", True),
        ("Please verify your email before logging in", None, False,
         AuthErrorCode.VERIFICATION_REQUIRED,
         "Login failed: Please verify your email before logging in", True),
    ],
)
def test_classify_login_failure(message, code, transport, expected_code, expected_message, resend):
    assert classify_login_failure(message, code, transport) == (
        expected_code, expected_message, resend,
    )


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

def test_successful_login_stores_token_then_redirects(
    controller, api, store, scheduler, navigator, fingerprinter,
):
    api.login.return_value = TokenResponse(token="tok-1")

    result = controller.login("  ops@example.com ", "Secret12")

    assert result.success is True
    assert result.token_issued is True
    api.login.assert_called_once_with("ops@example.com", "Secret12", "fp-hash")
    assert store.get() == "tok-1"
    assert controller.state is LoginState.SUCCESS_REDIRECTING
    assert controller.message == LOGIN_REDIRECT_MESSAGE
    assert controller.message_is_error is False

    scheduler.advance(0.5)
    navigator.show_dashboard.assert_not_called()
    scheduler.advance(0.5)
    navigator.show_dashboard.assert_called_once_with()


@pytest.mark.parametrize(("email", "password"), [("", "Secret12"), ("   ", "x"), ("a@b.co", "")])
def test_empty_fields_never_reach_the_server(controller, api, email, password):
    result = controller.login(email, password)

    assert result.error_code is AuthErrorCode.VALIDATION_ERROR
    assert controller.message == "Email and password are required"
    assert controller.state is LoginState.ERROR_SHOWN
    api.login.assert_not_called()


def test_invalid_credentials_show_generic_message(controller, api, store, navigator, logger):
    api.login.side_effect = ApiError("Invalid credentials", status=401)

    result = controller.login("ops@example.com", "wrong")

    assert result.error_code is AuthErrorCode.INVALID_CREDENTIALS
    assert controller.message == INVALID_CREDENTIALS_MESSAGE
    assert controller.show_resend_verification is False
    assert store.get() is None
    navigator.show_dashboard.assert_not_called()
    assert logger.warning.call_args.kwargs["extra"]["event"] == "LOGIN_FAILED"


def test_unverified_account_offers_resend(controller, api):
    api.login.side_effect = ApiError(
        "Please verify your email", code="VERIFICATION_REQUIRED", status=403,
    )

    result = controller.login("new@example.com", "Secret12")

    assert result.error_code is AuthErrorCode.VERIFICATION_REQUIRED
    assert controller.show_resend_verification is True


@pytest.mark.parametrize("error", [NetworkError("refused"), ResponseParseError("bad body")])
def test_transport_and_parse_failures_read_as_connectivity(controller, api, error):
    api.login.side_effect = error

    result = controller.login("ops@example.com", "Secret12")

    assert result.error_code is AuthErrorCode.NETWORK_ERROR
    assert controller.message == LOGIN_CONNECTIVITY_MESSAGE


def test_success_without_token_is_reported(controller, api, store, scheduler):
    api.login.return_value = TokenResponse(token=None)

    result = controller.login("ops@example.com", "Secret12")

    assert result.error_code is AuthErrorCode.MISSING_TOKEN
    assert controller.message == "Login successful! Please try again."
    assert store.get() is None
    assert scheduler.pending == 0


def test_failed_token_write_does_not_redirect(controller, api, store, scheduler, monkeypatch):
    api.login.return_value = TokenResponse(token="tok-1")
    monkeypatch.setattr(store, "set", lambda _token: False)

    result = controller.login("ops@example.com", "Secret12")

    assert result.success is False
    assert controller.message == SESSION_SAVE_FAILED_MESSAGE
    assert scheduler.pending == 0


def test_double_submit_issues_one_request(controller, api, blocking_call):
    entered, release, side_effect = blocking_call(TokenResponse(token="tok-1"))
    api.login.side_effect = side_effect
    results = []

    worker = threading.Thread(
        target=lambda: results.append(controller.login("ops@example.com", "Secret12")),
    )
    worker.start()
    assert entered.wait(timeout=5)

    assert controller.is_submitting
    duplicate = controller.login("ops@example.com", "Secret12")

    release.set()
    worker.join(timeout=5)

    assert duplicate.error_code is AuthErrorCode.DUPLICATE_SUBMISSION
    assert duplicate.is_suppressed
    assert results[0].success is True
    assert api.login.call_count == 1
    assert not controller.is_submitting


def test_login_can_be_retried_after_failure(controller, api):
    api.login.side_effect = [ApiError("Invalid credentials", status=401), TokenResponse(token="t")]

    assert controller.login("ops@example.com", "wrong").success is False
    assert controller.login("ops@example.com", "Secret12").success is True


def test_listeners_are_notified(controller, api):
    api.login.side_effect = ApiError("Invalid credentials", status=401)
    calls = []
    controller.subscribe(lambda: calls.append(controller.state))

    controller.login("ops@example.com", "wrong")

    assert LoginState.SUBMITTING in calls
    assert calls[-1] is LoginState.ERROR_SHOWN


# ---------------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------------

def test_google_login_success(controller, api, store, scheduler, navigator):
    api.google_auth.return_value = TokenResponse(token="g-tok")

    result = controller.google_login("id-token")

    assert result.token_issued is True
    assert store.get() == "g-tok"
    scheduler.advance(1.0)
    navigator.show_dashboard.assert_called_once_with()


def test_google_login_without_credential(controller, api):
    result = controller.google_login("")

    assert result.success is False
    assert controller.message == "Google Sign-In is not available. Please refresh and try again."
    api.google_auth.assert_not_called()


def test_google_login_rejected(controller, api):
    api.google_auth.side_effect = ApiError(None, status=401)

    controller.google_login("id-token")

    assert controller.message == "Google login failed: Google login failed"


# ---------------------------------------------------------------------------
# Resend verification
# ---------------------------------------------------------------------------

def test_resend_requires_an_email(controller, api):
    result = controller.resend_verification("  ")

    assert controller.message == "Please enter your email address first"
    assert result.error_code is AuthErrorCode.VALIDATION_ERROR
    api.resend_verification.assert_not_called()


def test_resend_success_hides_the_affordance(controller, api):
    api.login.side_effect = ApiError("verify", code="VERIFICATION_REQUIRED", status=403)
    controller.login("new@example.com", "Secret12")

    result = controller.resend_verification(" new@example.com")

    assert result.success is True
    api.resend_verification.assert_called_once_with("new@example.com")
    assert controller.show_resend_verification is False
    assert controller.message == "Verification email sent! Please check your inbox."
    assert controller.message_is_error is False


def test_resend_failure_prefixes_server_text(controller, api):
    api.resend_verification.side_effect = ApiError("Too many requests", status=429)

    controller.resend_verification("new@example.com")

    assert controller.message == "Failed to resend verification email: Too many requests"


def test_resend_network_failure(controller, api):
    api.resend_verification.side_effect = NetworkError("refused")

    result = controller.resend_verification("new@example.com")

    assert result.error_code is AuthErrorCode.NETWORK_ERROR
    assert controller.message == LOGIN_CONNECTIVITY_MESSAGE
