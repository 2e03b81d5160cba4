"""
Auth API Client.

Thin typed wrapper over the remote auth service.  Every method sends one
JSON request and either returns a validated response model or raises one
of the ``AuthApiError`` subclasses below; controllers translate those
into ``AuthResult`` values.

Failure mapping
---------------
- transport failures (DNS, refused connection, timeout) → ``NetworkError``
- non-JSON body, non-object body, or a body failing model validation
  → ``ResponseParseError``
- non-2xx status → ``ApiError`` carrying the server's ``message`` (or
  ``error``) and ``code``
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from sensorwatch.logger import StructuredLogger
from sensorwatch.models.api_models import (
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    SignupVerifyRequest,
    TokenResponse,
    VerifyTokenResponse,
)
from sensorwatch.models.user import User

M = TypeVar("M", bound=BaseModel)

PARSE_ERROR_MESSAGE: str = "Failed to parse server response"


class AuthApiError(Exception):
    """Base class for every failure raised by ``AuthApiClient``."""


class NetworkError(AuthApiError):
    """The request never produced an HTTP response."""


class ResponseParseError(AuthApiError):
    """The server answered with a body the client cannot interpret."""


class ApiError(AuthApiError):
    """The server rejected the request with a non-2xx status.

    Attributes
    ----------
    message:
        Server-provided ``message`` (or ``error``) text, ``None`` when the
        body carried neither.  Callers substitute their own default.
    code:
        Optional machine-readable code, e.g. ``"VERIFICATION_REQUIRED"``.
    status:
        HTTP status code.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status: int = 0,
    ) -> None:
        super().__init__(message or f"HTTP {status}")
        self.message: Optional[str] = message
        self.code: Optional[str] = code
        self.status: int = status


class AuthApiClient:
    """HTTP client for the auth and preference endpoints.

    Parameters
    ----------
    base_url:
        Service root, e.g. ``https://sensors.example.com``.
    logger:
        Structured logger.  Request bodies are never logged; they carry
        passwords, OTPs and tokens.
    timeout_s:
        Per-request timeout enforced by ``requests``.
    session:
        Optional pre-configured ``requests.Session`` (tests inject one).
    """

    def __init__(
        self,
        base_url: str,
        logger: StructuredLogger,
        timeout_s: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url: str = base_url.rstrip("/")
        self._logger: StructuredLogger = logger
        self._timeout_s: float = timeout_s
        self._http: requests.Session = session or requests.Session()
        self._http.headers.update({"Accept": "application/json"})

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def verify_token(self, token: str) -> User:
        data = self._request("POST", "/api/verify-token", {"token": token})
        return self._parse(VerifyTokenResponse, data).user

    def login(self, email: str, password: str, device_fingerprint: str) -> TokenResponse:
        body = LoginRequest(email=email, password=password, device_fingerprint=device_fingerprint)
        data = self._request("POST", "/api/login", self._dump(body))
        return self._parse(TokenResponse, data)

    def google_auth(self, credential: str) -> TokenResponse:
        data = self._request("POST", "/api/auth/google", {"credential": credential})
        return self._parse(TokenResponse, data)

    def signup(self, name: str, email: str, password: str, retype_password: str) -> SignupResponse:
        body = SignupRequest(name=name, email=email, password=password, retype_password=retype_password)
        data = self._request("POST", "/api/signup", self._dump(body))
        return self._parse(SignupResponse, data)

    def verify_signup(self, email: str, otp: str, signup_token: str) -> TokenResponse:
        body = SignupVerifyRequest(email=email, otp=otp, signup_token=signup_token)
        data = self._request("POST", "/api/signup/verify", self._dump(body))
        return self._parse(TokenResponse, data)

    def resend_verification(self, email: str) -> None:
        self._request("POST", "/api/resend-verification", {"email": email})

    def forgot_password(self, email: str) -> None:
        self._request("POST", "/api/forgot-password", {"email": email})

    def reset_password(self, email: str, otp: str, new_password: str, retype_password: str) -> None:
        body = ResetPasswordRequest(
            email=email, otp=otp, new_password=new_password, retype_password=retype_password,
        )
        self._request("POST", "/api/reset-password", self._dump(body))

    def get_user_preferences(self, token: str) -> dict[str, Any]:
        return self._request(
            "GET", "/api/user-preferences", None,
            headers={"Authorization": f"Bearer {token}"},
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict[str, Any]],
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(
                method, url, json=payload, headers=headers, timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            self._logger.warning(
                "Request to %s failed: %s", path, exc,
                extra={"event": "HTTP_NETWORK_ERROR", "path": path},
            )
            raise NetworkError(str(exc)) from exc

        data = self._decode(response, path)

        if not response.ok:
            message = data.get("message") or data.get("error")
            code = data.get("code")
            self._logger.info(
                "%s %s rejected with HTTP %d.", method, path, response.status_code,
                extra={"event": "HTTP_REJECTED", "path": path, "code": code or ""},
            )
            raise ApiError(
                str(message) if message else None,
                code=str(code) if code else None,
                status=response.status_code,
            )

        return data

    def _decode(self, response: requests.Response, path: str) -> dict[str, Any]:
        """Parse the body as a JSON object; an empty body becomes ``{}``."""
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            self._logger.warning(
                "Malformed response body from %s (HTTP %d).", path, response.status_code,
                extra={"event": "HTTP_PARSE_ERROR", "path": path},
            )
            raise ResponseParseError(PARSE_ERROR_MESSAGE) from exc
        if not isinstance(data, dict):
            raise ResponseParseError(PARSE_ERROR_MESSAGE)
        return data

    @staticmethod
    def _dump(body: BaseModel) -> dict[str, Any]:
        return body.model_dump(by_alias=True)

    @staticmethod
    def _parse(model: type[M], data: dict[str, Any]) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ResponseParseError(PARSE_ERROR_MESSAGE) from exc
