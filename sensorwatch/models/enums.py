"""
Shared Enumerations for SensorWatch Models.

All string enumerations for the auth flow state machines.  ``StrEnum``
values compare equal to their string equivalents, which keeps log
output and test assertions readable.
"""

from __future__ import annotations
from enum import StrEnum


class OperationState(StrEnum):
    """Lifecycle of a single guarded operation (submit, verify, resend)."""

    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"


class LoginState(StrEnum):
    """Credential flow states."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    ERROR_SHOWN = "error_shown"
    SUCCESS_REDIRECTING = "success_redirecting"


class SignupPhase(StrEnum):
    """Signup flow phases.

    ``OTP_PENDING`` is entered only after the server issued a signup
    challenge token; the challenge lives in memory and is lost on restart.
    """

    COLLECTING_INFO = "collecting_info"
    OTP_PENDING = "otp_pending"


class ResetStep(StrEnum):
    """Password-reset wizard steps.

    ``CLOSED`` is the initial state and the state the flow returns to
    after a successful reset.
    """

    CLOSED = "closed"
    REQUEST_EMAIL = "request_email"
    CONFIRM_OTP = "confirm_otp"
    SET_PASSWORD = "set_password"


class Surface(StrEnum):
    """Top-level screens the application shell can display."""

    LOGIN = "login"
    DASHBOARD = "dashboard"
