"""UI Theme Constants for SensorWatch.

Centralises all colour, font, and sizing constants for the
CustomTkinter interface: a light card-based login surface and a
dashboard with a dark header bar.

This file contains **zero logic**: only ``Final`` constants.
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Colour palette
# ---------------------------------------------------------------------------

HEADER_BG: Final[str] = "#12324a"
HEADER_TEXT: Final[str] = "#e6f1f8"

CONTENT_BG: Final[str] = "#eef3f6"
CONTENT_CARD_BG: Final[str] = "#ffffff"
CARD_BORDER: Final[str] = "#dde5ea"

ACCENT_PRIMARY: Final[str] = "#1f7a8c"
ACCENT_HOVER: Final[str] = "#176272"
LINK_HOVER: Final[str] = "#eef3f6"
TEXT_PRIMARY: Final[str] = "#12324a"
TEXT_SECONDARY: Final[str] = "#6c7a86"
TEXT_LIGHT: Final[str] = "#ffffff"

# Input / form
INPUT_BG: Final[str] = "#ffffff"
INPUT_BORDER: Final[str] = "#ced4da"
ERROR_TEXT: Final[str] = "#dc3545"
SUCCESS_TEXT: Final[str] = "#27ae60"

# Dashboard
FLAG_ON: Final[str] = "#27ae60"
FLAG_OFF: Final[str] = "#adb5bd"
LOGOUT_PRIMARY: Final[str] = "#e74c3c"
LOGOUT_HOVER: Final[str] = "#c0392b"

# ---------------------------------------------------------------------------
# Fonts (Segoe UI on Windows, fallback to system)
# ---------------------------------------------------------------------------

FONT_FAMILY: Final[str] = "Segoe UI"
FONT_BRAND: Final[tuple[str, int, str]] = (FONT_FAMILY, 22, "bold")
FONT_ICON_LG: Final[tuple[str, int, str]] = (FONT_FAMILY, 24, "bold")
FONT_HEADING: Final[tuple[str, int, str]] = (FONT_FAMILY, 20, "bold")
FONT_SUBTITLE: Final[tuple[str, int]] = (FONT_FAMILY, 12)
FONT_BODY: Final[tuple[str, int]] = (FONT_FAMILY, 13)
FONT_TAB: Final[tuple[str, int]] = (FONT_FAMILY, 13)
FONT_TAB_ACTIVE: Final[tuple[str, int, str]] = (FONT_FAMILY, 13, "bold")
FONT_LABEL: Final[tuple[str, int, str]] = (FONT_FAMILY, 11, "bold")
FONT_SMALL: Final[tuple[str, int]] = (FONT_FAMILY, 11)
FONT_CAPTION: Final[tuple[str, int]] = (FONT_FAMILY, 10)
FONT_BUTTON: Final[tuple[str, int, str]] = (FONT_FAMILY, 13, "bold")

# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

HEADER_HEIGHT: Final[int] = 56
LOGIN_WINDOW_WIDTH: Final[int] = 480
LOGIN_WINDOW_HEIGHT: Final[int] = 780
MAIN_WINDOW_WIDTH: Final[int] = 1100
MAIN_WINDOW_HEIGHT: Final[int] = 720
CORNER_RADIUS: Final[int] = 8
PADDING_SM: Final[int] = 8
PADDING_MD: Final[int] = 16
PADDING_LG: Final[int] = 24
