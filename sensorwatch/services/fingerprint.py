"""
Device Fingerprint Service.

Produces the auxiliary risk signal attached to every login request:
SHA-256 over ``"{user_agent}|{render_signature}|{width}x{height}"``.

The render signature measures how the local Tk installation lays out a
fixed probe string, which varies with fonts, DPI scaling and platform
text rendering.  When any signal is unavailable (headless machine, no
Tk) the service degrades to a low-entropy base64 digest instead of
blocking login.
"""

from __future__ import annotations

import base64
import hashlib
import platform
import threading
from typing import TYPE_CHECKING, Optional, Protocol

from sensorwatch import __version__
from sensorwatch.logger import StructuredLogger

if TYPE_CHECKING:
    import tkinter

_PROBE_TEXT: str = "Device fingerprint"
_FALLBACK_LENGTH: int = 64


class FingerprintSource(Protocol):
    """Environment signals the fingerprint is derived from."""

    def user_agent(self) -> str: ...

    def render_signature(self) -> str: ...

    def screen_size(self) -> tuple[int, int]: ...


def default_user_agent() -> str:
    """Client identifier in the style of a browser user agent."""
    return (
        f"SensorWatch/{__version__} "
        f"({platform.system()} {platform.release()}; {platform.machine()}) "
        f"Python/{platform.python_version()}"
    )


class TkFingerprintSource:
    """``FingerprintSource`` reading the screen and font rendering of *widget*."""

    def __init__(self, widget: tkinter.Misc) -> None:
        self._widget = widget

    def user_agent(self) -> str:
        return default_user_agent()

    def render_signature(self) -> str:
        import tkinter.font

        font = tkinter.font.Font(root=self._widget, family="Arial", size=14)
        metrics = font.metrics()
        return (
            f"{font.measure(_PROBE_TEXT)}:{metrics['ascent']}:"
            f"{metrics['descent']}:{metrics['linespace']}:"
            f"{self._widget.winfo_fpixels('1i'):.2f}"
        )

    def screen_size(self) -> tuple[int, int]:
        return self._widget.winfo_screenwidth(), self._widget.winfo_screenheight()


class HeadlessFingerprintSource:
    """Source for runs without a display; always degrades to the fallback."""

    def user_agent(self) -> str:
        return default_user_agent()

    def render_signature(self) -> str:
        raise RuntimeError("No display available for render signature.")

    def screen_size(self) -> tuple[int, int]:
        return 0, 0


class DeviceFingerprinter:
    """Computes the fingerprint on first use and caches it for the process.

    Parameters
    ----------
    source:
        Environment signal provider.
    logger:
        Structured logger.
    """

    def __init__(self, source: FingerprintSource, logger: StructuredLogger) -> None:
        self._source: FingerprintSource = source
        self._logger: StructuredLogger = logger
        self._lock: threading.Lock = threading.Lock()
        self._value: Optional[str] = None

    def get(self) -> str:
        """Return the cached fingerprint, computing it if needed."""
        with self._lock:
            if self._value is None:
                self._value = self._compute()
            return self._value

    def _compute(self) -> str:
        try:
            user_agent = self._source.user_agent()
            signature = self._source.render_signature()
            width, height = self._source.screen_size()
            material = f"{user_agent}|{signature}|{width}x{height}"
            return hashlib.sha256(material.encode("utf-8")).hexdigest()
        except Exception as exc:
            self._logger.warning(
                "Failed to generate device fingerprint, using fallback: %s", exc,
                extra={"event": "FINGERPRINT_FALLBACK"},
            )
            return self._fallback()

    def _fallback(self) -> str:
        try:
            user_agent = self._source.user_agent()
        except Exception:
            user_agent = default_user_agent()
        try:
            width, height = self._source.screen_size()
        except Exception:
            width, height = 0, 0
        raw = f"{user_agent}{width}{height}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")[:_FALLBACK_LENGTH]
