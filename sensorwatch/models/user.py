"""
User identity and dashboard preference models.

``User`` is whatever the verify-token endpoint reports about the session
owner.  ``UserPreferences`` holds the dashboard display settings.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """Authenticated session owner as returned by the token verifier."""

    email: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(extra="allow", from_attributes=True)

    @property
    def display_name(self) -> str:
        """Local part of the email address, or ``"User"`` when unknown."""
        if self.email:
            local_part = self.email.split("@")[0]
            if local_part:
                return local_part
        return "User"


class UserPreferences(BaseModel):
    """Dashboard preferences.

    A freshly constructed instance holds the dashboard defaults used until
    (or unless) the server copy loads.  The temperature unit is fixed to
    Fahrenheit; the server does not store it.
    """

    unit: str = "F"
    time_zone: str = "America/Anchorage"
    show_temp: bool = True
    show_humidity: bool = True
    show_sensors: bool = True
    show_users: bool = True
    show_alerts: bool = True
    dark_mode: bool = False
    username: Optional[str] = None

    @classmethod
    def from_server(cls, payload: dict[str, Any]) -> "UserPreferences":
        """Map the server's camelCase preference object.

        Flags absent from a stored preference row mean "off", unlike the
        defaults of a fresh instance.  ``showNotifications`` is a legacy
        alias that also enables the alerts panel.
        """
        username = payload.get("username")
        return cls(
            time_zone=payload.get("timeZone") or "America/Anchorage",
            show_temp=bool(payload.get("showTemp")),
            show_humidity=bool(payload.get("showHumidity")),
            show_sensors=bool(payload.get("showSensors")),
            show_users=bool(payload.get("showUsers")),
            show_alerts=bool(payload.get("showAlerts")) or bool(payload.get("showNotifications")),
            dark_mode=bool(payload.get("darkMode")),
            username=str(username) if username else None,
        )
