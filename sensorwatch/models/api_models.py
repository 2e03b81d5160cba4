"""
Auth API Payload Models.

Request and response bodies for the remote auth service.  Field aliases
match the service's camelCase JSON; Python code uses snake_case.
Response models ignore unknown keys so server additions never break the
client.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sensorwatch.models.user import User


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- Requests ---------------------------------------------------------------

class LoginRequest(_Payload):
    email: str
    password: str
    device_fingerprint: str = Field(alias="deviceFingerprint")


class SignupRequest(_Payload):
    name: str
    email: str
    password: str
    retype_password: str = Field(alias="retypePassword")


class SignupVerifyRequest(_Payload):
    email: str
    otp: str
    signup_token: str = Field(alias="signupToken")


class ResetPasswordRequest(_Payload):
    email: str
    otp: str
    new_password: str = Field(alias="newPassword")
    retype_password: str = Field(alias="retypePassword")


# --- Responses --------------------------------------------------------------

class TokenResponse(_Payload):
    """Login, Google auth and signup verification responses.

    ``token`` is optional: signup verification may succeed without
    issuing a session.
    """

    token: Optional[str] = None


class SignupResponse(_Payload):
    signup_token: Optional[str] = Field(default=None, alias="signupToken")


class VerifyTokenResponse(_Payload):
    user: User
