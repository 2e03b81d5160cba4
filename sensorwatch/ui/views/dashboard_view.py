"""Dashboard View: landing page after sign-in.

Shows who is signed in and how their dashboard is configured (time
zone, unit, visible panels), with a sign-out action.  Sensor charts
and tables are out of scope for this client; the panel list reflects
the user's stored preferences only.

**Thin UI Rule**: Zero business logic; only reads and displays.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import customtkinter as ctk

from sensorwatch.logger import StructuredLogger
from sensorwatch.services.dashboard_session import DashboardSession
from sensorwatch.ui.theme import (
    CONTENT_BG,
    CONTENT_CARD_BG,
    CORNER_RADIUS,
    FLAG_OFF,
    FLAG_ON,
    FONT_BODY,
    FONT_BRAND,
    FONT_BUTTON,
    FONT_HEADING,
    FONT_LABEL,
    FONT_SMALL,
    HEADER_BG,
    HEADER_HEIGHT,
    HEADER_TEXT,
    LOGOUT_HOVER,
    LOGOUT_PRIMARY,
    PADDING_LG,
    PADDING_MD,
    PADDING_SM,
    TEXT_LIGHT,
    TEXT_PRIMARY,
    TEXT_SECONDARY,
)

# (label, UserPreferences attribute)
_PANELS: tuple[tuple[str, str], ...] = (
    ("Temperature", "show_temp"),
    ("Humidity", "show_humidity"),
    ("Sensors", "show_sensors"),
    ("Users", "show_users"),
    ("Alerts", "show_alerts"),
)


class DashboardView(ctk.CTkFrame):
    """Dashboard shown after sign-in.

    The session is (re)verified on construction in a background thread;
    until that finishes the view shows a loading line.  If verification
    fails the session redirects to the login surface on its own.

    Parameters
    ----------
    parent:
        Root window provided by the Host Shell.
    session:
        Identity, preferences and logout for the signed-in user.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        parent: ctk.CTk,
        session: DashboardSession,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(parent, fg_color=CONTENT_BG)
        self._session = session
        self._logger = logger
        self._alive: bool = True

        # Dynamic widget references (populated by _build_ui)
        self._user_label: Optional[ctk.CTkLabel] = None
        self._email_label: Optional[ctk.CTkLabel] = None
        self._timezone_label: Optional[ctk.CTkLabel] = None
        self._unit_label: Optional[ctk.CTkLabel] = None
        self._theme_label: Optional[ctk.CTkLabel] = None
        self._panel_labels: dict[str, ctk.CTkLabel] = {}

        self._build_ui()
        session.subscribe(self._request_render)
        self._load()

    # ------------------------------------------------------------------
    # Widget creation
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        """Create all widgets; values are filled in by ``_render``."""
        # --- Header bar ---
        header = ctk.CTkFrame(self, fg_color=HEADER_BG, height=HEADER_HEIGHT, corner_radius=0)
        header.pack(fill="x")
        header.pack_propagate(False)

        ctk.CTkLabel(
            header,
            text="SensorWatch",
            font=FONT_BRAND,
            text_color=HEADER_TEXT,
        ).pack(side="left", padx=PADDING_LG)

        ctk.CTkButton(
            header,
            text="Sign Out",
            font=FONT_BUTTON,
            fg_color=LOGOUT_PRIMARY,
            hover_color=LOGOUT_HOVER,
            text_color=TEXT_LIGHT,
            width=110,
            height=34,
            corner_radius=CORNER_RADIUS,
            command=self._handle_logout,
        ).pack(side="right", padx=PADDING_LG)

        # --- Identity card ---
        card = ctk.CTkFrame(self, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        card.pack(padx=PADDING_LG, pady=(PADDING_LG, PADDING_MD), fill="x")

        self._user_label = ctk.CTkLabel(
            card,
            text="Loading your dashboard...",
            font=FONT_HEADING,
            text_color=TEXT_PRIMARY,
            anchor="w",
        )
        self._user_label.pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, 4))

        self._email_label = ctk.CTkLabel(
            card,
            text="",
            font=FONT_BODY,
            text_color=TEXT_SECONDARY,
            anchor="w",
        )
        self._email_label.pack(fill="x", padx=PADDING_MD, pady=(0, PADDING_MD))

        # --- Preferences card ---
        prefs = ctk.CTkFrame(self, fg_color=CONTENT_CARD_BG, corner_radius=CORNER_RADIUS)
        prefs.pack(padx=PADDING_LG, pady=(0, PADDING_LG), fill="x")

        ctk.CTkLabel(
            prefs,
            text="DISPLAY PREFERENCES",
            font=FONT_LABEL,
            text_color=TEXT_PRIMARY,
            anchor="w",
        ).pack(fill="x", padx=PADDING_MD, pady=(PADDING_MD, PADDING_SM))

        self._timezone_label = self._info_line(prefs)
        self._unit_label = self._info_line(prefs)
        self._theme_label = self._info_line(prefs)

        panels = ctk.CTkFrame(prefs, fg_color="transparent")
        panels.pack(fill="x", padx=PADDING_MD, pady=(PADDING_SM, PADDING_MD))
        for column, (title, _attr) in enumerate(_PANELS):
            label = ctk.CTkLabel(panels, text=title, font=FONT_SMALL, text_color=FLAG_OFF)
            label.grid(row=0, column=column, padx=(0, PADDING_MD), sticky="w")
            self._panel_labels[title] = label

    @staticmethod
    def _info_line(parent: ctk.CTkFrame) -> ctk.CTkLabel:
        label = ctk.CTkLabel(parent, text="", font=FONT_BODY, text_color=TEXT_SECONDARY, anchor="w")
        label.pack(fill="x", padx=PADDING_MD)
        return label

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def _load(self) -> None:
        """Verify the session and fetch preferences off the UI thread."""
        def _load_in_background() -> None:
            try:
                self._session.load()
            except Exception as exc:
                self._logger.exception("Dashboard load failed: %s", exc)

        threading.Thread(
            target=_load_in_background,
            name="dashboard-load",
            daemon=True,
        ).start()

    def _request_render(self) -> None:
        self._post(self._render)

    def _render(self) -> None:
        if not self._alive:
            return

        user = self._session.user
        if user is None:
            return

        prefs = self._session.preferences
        self._user_label.configure(text=f"Welcome, {self._session.display_name}")
        self._email_label.configure(text=user.email or "")
        self._timezone_label.configure(text=f"Time zone: {prefs.time_zone}")
        self._unit_label.configure(text=f"Temperature unit: °{prefs.unit}")
        self._theme_label.configure(text=f"Theme: {'Dark' if prefs.dark_mode else 'Light'}")

        for title, attr in _PANELS:
            enabled = bool(getattr(prefs, attr))
            self._panel_labels[title].configure(
                text=f"{'●' if enabled else '○'} {title}",
                text_color=FLAG_ON if enabled else FLAG_OFF,
            )

    def _post(self, callback: Callable[..., None], *args: Any) -> None:
        if self._alive:
            self.after(0, callback, *args)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _handle_logout(self) -> None:
        self._session.logout()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Detach from the session before destroying the widget."""
        self._alive = False
        self._session.unsubscribe(self._request_render)
        super().destroy()
