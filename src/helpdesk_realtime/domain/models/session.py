"""Realtime session domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class ConnectionState(StrEnum):
    """Lifecycle of a client's realtime connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"  # Reconnection budget exhausted
    DISCONNECTED = "disconnected"  # Closed on purpose


@dataclass
class Session:
    """One realtime connection, owned by the connection manager."""

    token: str | None = None
    sid: str | None = None
    connected_at: datetime | None = None
    retry_count: int = 0
