"""
Data Models Package.

Re-exports the models most callers need:
    from sensorwatch.models import AuthResult, AuthErrorCode, User
"""

from __future__ import annotations

from sensorwatch.models.auth_models import AuthErrorCode, AuthResult, ValidationResult
from sensorwatch.models.enums import (
    LoginState,
    OperationState,
    ResetStep,
    SignupPhase,
    Surface,
)
from sensorwatch.models.user import User, UserPreferences

__all__ = [
    "AuthErrorCode",
    "AuthResult",
    "LoginState",
    "OperationState",
    "ResetStep",
    "SignupPhase",
    "Surface",
    "User",
    "UserPreferences",
    "ValidationResult",
]
