"""
Auth Services Package.

Contains the API client, the session store, and the flow controllers
behind the login and dashboard surfaces.

The ``create_services()`` factory wires every client and controller
together, returning a typed dict that the application layer (shell /
views) can consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from sensorwatch.config import AppConfig
from sensorwatch.logger import get_logger
from sensorwatch.navigation import Navigator
from sensorwatch.scheduling import Scheduler
from sensorwatch.services.api_client import AuthApiClient
from sensorwatch.services.credential_flow import CredentialFlowController
from sensorwatch.services.dashboard_session import DashboardSession
from sensorwatch.services.fingerprint import (
    DeviceFingerprinter,
    FingerprintSource,
    HeadlessFingerprintSource,
)
from sensorwatch.services.password_reset import PasswordResetController
from sensorwatch.services.session_guard import SessionGuard
from sensorwatch.services.signup_flow import SignupController
from sensorwatch.session_store import SessionStore


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Infrastructure ---
    api_client: AuthApiClient
    session_store: SessionStore
    fingerprinter: DeviceFingerprinter

    # --- Controllers ---
    session_guard: SessionGuard
    credential_flow: CredentialFlowController
    signup_flow: SignupController
    password_reset: PasswordResetController
    dashboard_session: DashboardSession


def create_services(
    config: AppConfig,
    store: SessionStore,
    scheduler: Scheduler,
    navigator: Navigator,
    fingerprint_source: Optional[FingerprintSource] = None,
    api_client: Optional[AuthApiClient] = None,
) -> ServiceContainer:
    """
    Wire the API client and every controller together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once the shell window exists
    (the scheduler and navigator are backed by it).

    Args:
        config: Application configuration (delays, cooldowns, base URL).
        store: Session token slot shared by all controllers.
        scheduler: Delayed-call backend for redirects, banners and cooldowns.
        navigator: Surface switcher the controllers redirect through.
        fingerprint_source: Device signals; headless fallback when omitted.
        api_client: Pre-built client (tests inject a fake).

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Infrastructure
    # ------------------------------------------------------------------
    api = api_client or AuthApiClient(
        base_url=config.api_root,
        logger=get_logger("api"),
        timeout_s=config.REQUEST_TIMEOUT_S,
    )
    fingerprinter = DeviceFingerprinter(
        source=fingerprint_source or HeadlessFingerprintSource(),
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 2. Session guard (shared by the shell and the dashboard)
    # ------------------------------------------------------------------
    session_guard = SessionGuard(
        api=api,
        store=store,
        navigator=navigator,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Login-surface controllers
    # ------------------------------------------------------------------
    credential_flow = CredentialFlowController(
        api=api,
        store=store,
        fingerprinter=fingerprinter,
        scheduler=scheduler,
        navigator=navigator,
        logger=get_logger("auth.login"),
        redirect_delay_s=config.REDIRECT_DELAY_S,
    )
    signup_flow = SignupController(
        api=api,
        store=store,
        scheduler=scheduler,
        navigator=navigator,
        logger=get_logger("auth.signup"),
        resend_cooldown_s=config.OTP_RESEND_COOLDOWN_S,
        redirect_delay_s=config.REDIRECT_DELAY_S,
        login_fallback_delay_s=config.SIGNUP_LOGIN_FALLBACK_DELAY_S,
    )
    password_reset = PasswordResetController(
        api=api,
        scheduler=scheduler,
        logger=get_logger("auth.reset"),
        resend_cooldown_s=config.OTP_RESEND_COOLDOWN_S,
        banner_duration_s=config.RESET_BANNER_DURATION_S,
    )

    # ------------------------------------------------------------------
    # 4. Dashboard
    # ------------------------------------------------------------------
    dashboard_session = DashboardSession(
        api=api,
        store=store,
        guard=session_guard,
        navigator=navigator,
        logger=get_logger("dashboard"),
    )

    return ServiceContainer(
        api_client=api,
        session_store=store,
        fingerprinter=fingerprinter,
        session_guard=session_guard,
        credential_flow=credential_flow,
        signup_flow=signup_flow,
        password_reset=password_reset,
        dashboard_session=dashboard_session,
    )
