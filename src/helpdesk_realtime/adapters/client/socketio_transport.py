"""Socket.IO implementation of the realtime transport."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

import socketio

from helpdesk_realtime.domain.contracts.realtime_transport import RealtimeTransportProtocol

if TYPE_CHECKING:
    from helpdesk_realtime.domain.contracts.realtime_transport import EventHandler

logger = logging.getLogger(__name__)


class SocketIoTransport(RealtimeTransportProtocol):
    """One python-socketio client connection with its own reconnection turned off."""

    def __init__(
        self,
        url: str,
        socketio_path: str = "socket.io",
        transports: list[str] | None = None,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            url: Base URL of the realtime server.
            socketio_path: Path the realtime endpoint is mounted at.
            transports: Negotiation order, polling first then websocket by default.
            client: Client to use instead of a new one.
        """
        self._url = url
        self._socketio_path = socketio_path
        self._transports = transports or ["polling", "websocket"]
        self._client = client or socketio.AsyncClient(reconnection=False)

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    @property
    def sid(self) -> str | None:
        return self._client.get_sid() if self._client.connected else None

    async def connect(self, auth: dict[str, Any] | None, timeout: float) -> None:
        try:
            await asyncio.wait_for(
                self._client.connect(
                    self._url,
                    auth=auth,
                    transports=self._transports,
                    socketio_path=self._socketio_path,
                    wait_timeout=timeout,
                ),
                timeout,
            )
        except TimeoutError:
            logger.warning(f"Handshake with {self._url} did not finish within {timeout}s")
            await self._abandon()
            raise

    async def disconnect(self) -> None:
        if self._client.connected:
            await self._client.disconnect()

    async def emit(self, event: str, payload: Any) -> None:
        await self._client.emit(event, payload)

    async def call(self, event: str, payload: Any, timeout: float) -> Any:
        try:
            return await self._client.call(event, payload, timeout=timeout)
        except socketio.exceptions.TimeoutError as e:
            raise TimeoutError(f"No acknowledgement for {event} within {timeout}s") from e

    def on(self, event: str, handler: EventHandler) -> None:
        async def _handler(*args: Any) -> None:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result

        self._client.on(event, _handler)

    async def _abandon(self) -> None:
        try:
            await self._client.disconnect()
        except Exception as e:
            logger.debug(f"Ignoring error while abandoning handshake: {e}")
