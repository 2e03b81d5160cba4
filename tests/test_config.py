"""Tests for environment-driven configuration."""

from __future__ import annotations

from sensorwatch import config as config_module
from sensorwatch.config import AppConfig, get_config


def test_defaults():
    cfg = AppConfig(_env_file=None)

    assert cfg.OTP_RESEND_COOLDOWN_S == 60
    assert cfg.REDIRECT_DELAY_S == 1.0
    assert cfg.SIGNUP_LOGIN_FALLBACK_DELAY_S == 2.0
    assert cfg.RESET_BANNER_DURATION_S == 5.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", "https://sensors.example.com/")
    monkeypatch.setenv("OTP_RESEND_COOLDOWN_S", "30")

    cfg = AppConfig(_env_file=None)

    assert cfg.api_root == "https://sensors.example.com"
    assert cfg.OTP_RESEND_COOLDOWN_S == 30


def test_missing_google_client_id_is_logged(caplog):
    with caplog.at_level("WARNING", logger="sensorwatch.config"):
        AppConfig(_env_file=None, GOOGLE_CLIENT_ID="")

    assert any("GOOGLE_CLIENT_ID" in record.getMessage() for record in caplog.records)


def test_get_config_is_cached(monkeypatch):
    monkeypatch.setattr(config_module, "_config_instance", None)

    assert get_config() is get_config()
