"""Protocol for the client side of a realtime transport."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

EventHandler = Callable[..., Awaitable[None] | None]


class RealtimeTransportProtocol(Protocol):
    """A single bidirectional connection to the realtime server.

    The transport never reconnects on its own; reconnection policy belongs to the
    connection manager that owns it.
    """

    @property
    def connected(self) -> bool:
        """Whether the transport currently has an open connection."""
        ...

    @property
    def sid(self) -> str | None:
        """Session id assigned by the server, if connected."""
        ...

    async def connect(self, auth: dict[str, Any] | None, timeout: float) -> None:
        """Open the connection.

        Args:
            auth: Authentication payload sent with the handshake.
            timeout: Upper bound for the handshake in seconds.

        Raises:
            Exception: Any failure to establish the connection.
        """
        ...

    async def disconnect(self) -> None:
        """Close the connection if open."""
        ...

    async def emit(self, event: str, payload: Any) -> None:
        """Send an event without waiting for an acknowledgement."""
        ...

    async def call(self, event: str, payload: Any, timeout: float) -> Any:
        """Send an event and wait for exactly one acknowledgement.

        Raises:
            TimeoutError: When no acknowledgement arrives in time.
        """
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Register the single dispatcher for an inbound event (including ``disconnect``)."""
        ...
