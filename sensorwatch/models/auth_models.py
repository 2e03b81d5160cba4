"""
Authentication Flow Models.

Pydantic models and enumerations for the contracts between the auth
controllers and the UI layer.  Every controller operation returns an
``AuthResult``; the UI never inspects raw exceptions.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from sensorwatch.models.user import User


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of authentication failure categories.

    ``DUPLICATE_SUBMISSION``, ``COOLDOWN_ACTIVE`` and ``STALE_RESPONSE``
    are suppressed outcomes: the controller leaves its shown message
    untouched.  ``STALE_RESPONSE`` marks a server reply that arrived after
    its flow was closed or reset.
    """

    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    INVALID_CREDENTIALS = "invalid_credentials"
    VERIFICATION_REQUIRED = "verification_required"
    SERVER_ERROR = "server_error"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    SERVER_REJECTED = "server_rejected"
    MISSING_TOKEN = "missing_token"
    DUPLICATE_SUBMISSION = "duplicate_submission"
    COOLDOWN_ACTIVE = "cooldown_active"
    STALE_RESPONSE = "stale_response"
    UNKNOWN_ERROR = "unknown_error"


# Server error code that marks an unverified account on login.
VERIFICATION_REQUIRED_CODE: str = "VERIFICATION_REQUIRED"
# Server error code reported when the backing database is unreachable.
DATABASE_ERROR_CODE: str = "DATABASE_ERROR"


# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

LOGIN_CONNECTIVITY_MESSAGE: str = (
    "Unable to connect to the server. Please check your network "
    "connection or try again later."
)
AUTH_SERVER_CONNECTIVITY_MESSAGE: str = (
    "Unable to connect to authentication server. Please check your "
    "network or contact support."
)
INVALID_CREDENTIALS_MESSAGE: str = "Invalid email or password. Please try again."
SERVER_ERROR_MESSAGE: str = (
    "Server connection error. Please try again later or contact support."
)
DUPLICATE_ACCOUNT_MESSAGE: str = (
    "An account with this email already exists. Please try logging in instead."
)
INVALID_OTP_MESSAGE: str = "Please enter a valid 6-digit code"
LOGIN_REDIRECT_MESSAGE: str = "Logged in successfully! Redirecting..."


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a client-side validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes every rule.
    error_message:
        Message of the first failing rule, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=message)


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for every controller operation.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured failure category (``None`` on success).
    message:
        Human-readable text the UI should display, on success or failure.
        ``None`` for suppressed outcomes.
    user:
        Session owner, populated by the session guard.
    token_issued:
        ``True`` when a session token was persisted by this operation.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    message: Optional[str] = None
    user: Optional[User] = None
    token_issued: bool = False

    @classmethod
    def failure(cls, code: AuthErrorCode, message: Optional[str] = None) -> "AuthResult":
        return cls(success=False, error_code=code, message=message)

    @property
    def is_suppressed(self) -> bool:
        """``True`` for outcomes the UI should ignore entirely."""
        return self.error_code in (
            AuthErrorCode.DUPLICATE_SUBMISSION,
            AuthErrorCode.COOLDOWN_ACTIVE,
            AuthErrorCode.STALE_RESPONSE,
        )
