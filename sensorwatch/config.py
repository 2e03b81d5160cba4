"""
Application Configuration.

Pydantic Settings model for the SensorWatch client.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Auth API ---
    API_BASE_URL: str = "http://localhost:3000"
    REQUEST_TIMEOUT_S: float = 15.0
    GOOGLE_CLIENT_ID: str = ""

    # --- Auth flow timings ---
    OTP_RESEND_COOLDOWN_S: int = 60
    REDIRECT_DELAY_S: float = 1.0
    SIGNUP_LOGIN_FALLBACK_DELAY_S: float = 2.0
    RESET_BANNER_DURATION_S: float = 5.0

    # --- Session storage ---
    SESSION_DB_PATH: str = "sensorwatch_client.db"
    SESSION_SALT_PATH: str = str(Path.home() / ".sensorwatch_session_salt")

    # --- Logging ---
    LOG_FILE: str = "sensorwatch.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line telling them the client is running
        against placeholder values.
        """
        _log = logging.getLogger("sensorwatch.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.API_BASE_URL:
            _log.warning(
                "API_BASE_URL is empty; every auth request will fail "
                "with a connectivity error."
            )

        if not self.GOOGLE_CLIENT_ID:
            _log.warning(
                "GOOGLE_CLIENT_ID is empty; Google Sign-In will not work."
            )

        return self

    @property
    def api_root(self) -> str:
        """``API_BASE_URL`` without a trailing slash."""
        return self.API_BASE_URL.rstrip("/")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path skips the lock while
    first initialisation stays thread-safe.  Prefer constructor injection
    of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
