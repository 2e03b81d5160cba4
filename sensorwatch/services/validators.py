"""
Client-side Auth Validation.

Pure functions shared by the signup and password-reset controllers.
Rules run in a fixed order and the first failing rule supplies the
message; nothing here touches the network.
"""

from __future__ import annotations

import re

from sensorwatch.models.auth_models import INVALID_OTP_MESSAGE, ValidationResult

# Deliberately loose ``local@domain.tld`` shape; the server is authoritative.
_EMAIL_RE: re.Pattern[str] = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_OTP_RE: re.Pattern[str] = re.compile(r"^\d{6}$")

MIN_NAME_LENGTH: int = 2
MIN_PASSWORD_LENGTH: int = 8

PASSWORD_COMPOSITION_MESSAGE: str = "Password must contain uppercase, lowercase, and numbers"


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.fullmatch(email) is not None


def is_valid_otp(code: str) -> bool:
    """``True`` for exactly six ASCII digits."""
    return bool(code) and _OTP_RE.fullmatch(code) is not None and code.isascii()


def validate_otp(code: str) -> ValidationResult:
    if not is_valid_otp(code):
        return ValidationResult.fail(INVALID_OTP_MESSAGE)
    return ValidationResult.ok()


def validate_new_password(password: str, confirmation: str) -> ValidationResult:
    """Length, then equality, then composition (upper, lower, digit)."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return ValidationResult.fail(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if password != confirmation:
        return ValidationResult.fail("Passwords do not match")
    if not (
        re.search(r"[A-Z]", password)
        and re.search(r"[a-z]", password)
        and re.search(r"\d", password)
    ):
        return ValidationResult.fail(PASSWORD_COMPOSITION_MESSAGE)
    return ValidationResult.ok()


def validate_signup(name: str, email: str, password: str, confirmation: str) -> ValidationResult:
    """Validate the signup form.

    Order: name length, email shape, password length, password match,
    password composition.
    """
    if not name or len(name.strip()) < MIN_NAME_LENGTH:
        return ValidationResult.fail(
            f"Name must be at least {MIN_NAME_LENGTH} characters",
        )
    if not is_valid_email(email):
        return ValidationResult.fail("Valid email is required")
    return validate_new_password(password, confirmation)
