"""
Surface Navigation.

Controllers request screen changes through a ``Navigator``; the
application shell implements it by swapping views.  Calls may arrive
from worker threads, so implementations marshal onto the UI thread.
"""

from __future__ import annotations

from typing import Protocol


class Navigator(Protocol):
    """Switches between the login and dashboard surfaces."""

    def show_login(self) -> None:
        """Display the login surface (sign-in form when already showing)."""
        ...

    def show_dashboard(self) -> None:
        """Display the dashboard surface."""
        ...
