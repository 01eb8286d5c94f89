"""Shared display state definitions for the intake kiosk."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


class DisplayMode(str, enum.Enum):
    """
    Display modes in chronological order:

    1. STANDBY       - Rotating advertisements (initial state)
    2. CONFIRM_DATA  - Session active, customer reviews device and quote
    3. COMPLETED     - Success screen (dwell) → STANDBY
    """
    STANDBY = "standby"
    CONFIRM_DATA = "confirm_data"
    COMPLETED = "completed"


class ConnectionState(str, enum.Enum):
    """Advisory connection indicator shown in the display corner."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class PromptKind(str, enum.Enum):
    """Customer input requested by the operator during CONFIRM_DATA."""
    PASSWORD = "password"
    SIGNATURE = "signature"


@dataclass
class DisplayEvent:
    """Event payload distributed to renderer clients over the local WebSocket."""

    type: str
    data: Dict[str, Any]
    mode: DisplayMode
    error: Optional[str] = None


__all__ = ["DisplayMode", "ConnectionState", "PromptKind", "DisplayEvent"]
