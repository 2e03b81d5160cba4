"""Application Host Shell.

The top-level ``CTk`` window that orchestrates the application
lifecycle: session check → login surface ↔ dashboard surface.

All dependencies are injected.  The shell contains no business logic;
it implements ``Navigator`` for the controllers by swapping the
``LoginView`` and ``DashboardView`` frames.
"""

from __future__ import annotations

import threading
from typing import Optional

import customtkinter as ctk

from sensorwatch.config import AppConfig
from sensorwatch.logger import StructuredLogger
from sensorwatch.models.enums import Surface
from sensorwatch.services import ServiceContainer
from sensorwatch.ui.login_view import LoginView
from sensorwatch.ui.theme import (
    LOGIN_WINDOW_HEIGHT,
    LOGIN_WINDOW_WIDTH,
    MAIN_WINDOW_HEIGHT,
    MAIN_WINDOW_WIDTH,
)
from sensorwatch.ui.views.dashboard_view import DashboardView


class AppShell(ctk.CTk):
    """Host Shell: the main application window.

    Lifecycle
    ---------
    1. ``start()``: displays the ``LoginView`` and runs the session
       guard in the background; a still-valid stored token jumps
       straight to the dashboard.
    2. ``show_dashboard()``: replaces the login view with a
       ``DashboardView``, which re-verifies the session on load.
    3. ``show_login()``: returns to the sign-in form (after logout, a
       rejected token, or a signup that issued no session).

    ``show_login`` / ``show_dashboard`` may be called from worker
    threads; they marshal onto the Tk main loop with ``self.after(0, ...)``.

    Parameters
    ----------
    config:
        Application configuration.
    logger:
        Structured logger instance.
    """

    def __init__(self, config: AppConfig, logger: StructuredLogger) -> None:
        super().__init__()

        self._config = config
        self._logger = logger
        self._services: Optional[ServiceContainer] = None

        self._login_view: Optional[LoginView] = None
        self._dashboard_view: Optional[DashboardView] = None

        # Window defaults
        self.title("SensorWatch")
        ctk.set_appearance_mode("light")
        ctk.set_default_color_theme("blue")

        # Graceful shutdown on window close
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    def start(self, services: ServiceContainer) -> None:
        """Attach the wired services, show the login surface, check the stored session."""
        self._services = services
        self._show_login_view()
        self._check_session()

    # ==================================================================
    # Navigator
    # ==================================================================

    def show_login(self) -> None:
        self.after(0, self._show_login_view)

    def show_dashboard(self) -> None:
        self.after(0, self._show_dashboard_view)

    # ==================================================================
    # View transitions
    # ==================================================================

    def _show_login_view(self) -> None:
        """Display the login view and size the window appropriately."""
        if self._login_view is not None:
            self._login_view.show_sign_in()
            return

        self._clear_dashboard()

        self.geometry(f"{MAIN_WINDOW_WIDTH}x{MAIN_WINDOW_HEIGHT}")
        self.resizable(True, True)
        self.minsize(LOGIN_WINDOW_WIDTH, LOGIN_WINDOW_HEIGHT)

        self._login_view = LoginView(
            parent=self,
            credential_flow=self._services["credential_flow"],
            signup_flow=self._services["signup_flow"],
            password_reset=self._services["password_reset"],
            logger=self._logger,
        )
        self._login_view.pack(fill="both", expand=True)

    def _show_dashboard_view(self) -> None:
        """Replace the login view with the dashboard."""
        if self._dashboard_view is not None:
            return

        if self._login_view is not None:
            self._login_view.destroy()
            self._login_view = None

        self.geometry(f"{MAIN_WINDOW_WIDTH}x{MAIN_WINDOW_HEIGHT}")
        self.resizable(True, True)
        self.minsize(800, 500)

        self._dashboard_view = DashboardView(
            parent=self,
            session=self._services["dashboard_session"],
            logger=self._logger,
        )
        self._dashboard_view.pack(fill="both", expand=True)
        self._logger.info("Dashboard opened.")

    def _clear_dashboard(self) -> None:
        if self._dashboard_view is not None:
            self._dashboard_view.destroy()
            self._dashboard_view = None

    # ==================================================================
    # Session check
    # ==================================================================

    def _check_session(self) -> None:
        """Verify the stored token without blocking the event loop.

        The guard itself redirects to the dashboard when the token is
        still honoured; otherwise the login view simply stays up.
        """
        guard = self._services["session_guard"]

        def _check_in_background() -> None:
            try:
                guard.check(Surface.LOGIN)
            except Exception as exc:
                self._logger.exception("Startup session check failed: %s", exc)

        thread = threading.Thread(
            target=_check_in_background,
            name="session-check",
            daemon=True,
        )
        thread.start()

    # ==================================================================
    # Window close
    # ==================================================================

    def _on_close(self) -> None:
        """Detach views from their controllers before destroying."""
        if self._login_view is not None:
            self._login_view.destroy()
            self._login_view = None
        self._clear_dashboard()
        self.destroy()
