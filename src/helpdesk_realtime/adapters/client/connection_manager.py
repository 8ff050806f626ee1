"""Client-side realtime connection with bounded reconnection."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from helpdesk_realtime.application.clock import Clock, utc_now
from helpdesk_realtime.domain.models.events import (
    CONNECT,
    CONNECT_FAILED,
    DISCONNECT,
    ERROR,
    LIFECYCLE_EVENTS,
)
from helpdesk_realtime.domain.models.session import ConnectionState, Session

if TYPE_CHECKING:
    from helpdesk_realtime.adapters.config import AppConfig
    from helpdesk_realtime.domain.contracts.realtime_transport import (
        EventHandler,
        RealtimeTransportProtocol,
    )

logger = logging.getLogger(__name__)

StateHandler = Callable[[ConnectionState], Awaitable[None] | None]
AckHandler = Callable[[Any], Awaitable[None] | None]
Sleep = Callable[[float], Awaitable[None]]

_ACTIVE_STATES = frozenset(
    {ConnectionState.CONNECTING, ConnectionState.CONNECTED, ConnectionState.RECONNECTING}
)


@dataclass(frozen=True)
class ConnectionSettings:
    """Where to connect and how hard to try."""

    url: str
    socketio_path: str = "socket.io"
    transports: tuple[str, ...] = ("polling", "websocket")
    max_attempts: int = 5
    delay: float = 1.0
    delay_min: float = 1.0
    delay_max: float = 5.0
    handshake_timeout: float = 20.0
    ack_timeout: float = 10.0

    @property
    def retry_delay(self) -> float:
        """The fixed delay between attempts, clamped into its bounds."""
        return max(self.delay_min, min(self.delay_max, self.delay))

    @classmethod
    def from_config(cls, config: AppConfig) -> ConnectionSettings:
        return cls(
            url=config.server_url,
            socketio_path=config.socketio_path,
            transports=tuple(config.transport_list),
            max_attempts=config.reconnection_attempts,
            delay=config.reconnection_delay_seconds,
            delay_min=config.reconnection_delay_min_seconds,
            delay_max=config.reconnection_delay_max_seconds,
            handshake_timeout=config.handshake_timeout_seconds,
            ack_timeout=config.ack_timeout_seconds,
        )


@dataclass
class _StickyAnnouncement:
    name: str
    payload_factory: Callable[[], Any]
    on_ack: AckHandler | None = None


async def _call_handler(handler: Callable[..., Any], *args: Any) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class ConnectionManager:
    """Owns one realtime session and keeps it alive within a bounded budget.

    After an unexpected drop the manager retries up to ``max_attempts`` times,
    waiting a fixed delay before each attempt. A successful attempt resets the
    retry count and re-sends every sticky announcement; exhausting the budget
    moves to the terminal ``failed`` state. Failures are reported through the
    ``error`` and ``connect_failed`` events and never raised to callers.

    Lifecycle events (``connect``, ``disconnect``, ``error``, ``connect_failed``)
    are raised by the manager itself; every other event name is a server event.
    """

    def __init__(
        self,
        transport: RealtimeTransportProtocol,
        settings: ConnectionSettings,
        token: str | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the connection manager.

        Args:
            transport: The transport to drive; it must not reconnect on its own.
            settings: Endpoint and reconnection policy.
            token: Authentication token sent with every handshake.
            sleep: Waits between reconnection attempts.
            clock: Time source for the session's ``connected_at``.
        """
        self._transport = transport
        self.settings = settings
        self.session = Session(token=token)
        self._sleep = sleep
        self._clock = clock
        self._state = ConnectionState.IDLE
        self._handlers: dict[str, list[EventHandler]] = {}
        self._bound_events: set[str] = set()
        self._state_handlers: list[StateHandler] = []
        self._stickies: dict[str, _StickyAnnouncement] = {}
        self._retry_task: asyncio.Task[None] | None = None
        self._closing = False

        transport.on(DISCONNECT, self._on_transport_disconnect)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED and self._transport.connected

    def on_event(self, name: str, handler: EventHandler) -> None:
        """Subscribe to a lifecycle event or a server event."""
        self._handlers.setdefault(name, []).append(handler)
        if name not in LIFECYCLE_EVENTS and name not in self._bound_events:
            self._bound_events.add(name)

            async def _dispatch_server_event(*args: Any) -> None:
                await self._dispatch(name, *args)

            self._transport.on(name, _dispatch_server_event)

    def off_event(self, name: str, handler: EventHandler) -> None:
        """Unsubscribe a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def on_state_change(self, handler: StateHandler) -> None:
        self._state_handlers.append(handler)

    def off_state_change(self, handler: StateHandler) -> None:
        if handler in self._state_handlers:
            self._state_handlers.remove(handler)

    def add_sticky(
        self, name: str, payload_factory: Callable[[], Any], on_ack: AckHandler | None = None
    ) -> None:
        """Register an announcement re-sent after every successful (re)connect.

        Args:
            name: Event to emit.
            payload_factory: Builds the payload at emit time.
            on_ack: If given, the event is emitted with an acknowledgement and the
                acknowledgement payload is passed to this callback.
        """
        self._stickies[name] = _StickyAnnouncement(name, payload_factory, on_ack)

    def remove_sticky(self, name: str) -> None:
        self._stickies.pop(name, None)

    async def connect(self) -> bool:
        """Open the connection, falling back to the reconnection policy on failure.

        Returns:
            True if connected by the first attempt.
        """
        if self._state in _ACTIVE_STATES:
            return self.is_connected

        self._closing = False
        self.session.retry_count = 0
        await self._set_state(ConnectionState.CONNECTING)
        if await self._attempt():
            return True
        self._start_retry_loop()
        return False

    async def disconnect(self) -> None:
        """Close the connection on purpose and stop any reconnection."""
        self._closing = True
        task = self._retry_task
        self._retry_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._transport.connected:
            try:
                await self._transport.disconnect()
            except Exception as e:
                logger.warning(f"Error while closing realtime connection: {e}")
        self.session.sid = None
        await self._set_state(ConnectionState.DISCONNECTED)

    async def emit(self, name: str, payload: Any = None, ack: bool = False) -> Any:
        """Send an event.

        Args:
            name: Event name.
            payload: Event payload.
            ack: Wait for exactly one acknowledgement, bounded by the ack timeout.

        Returns:
            The acknowledgement payload if ``ack`` is set and it arrived, otherwise None.
        """
        if not self.is_connected:
            logger.debug(f"Dropping {name}: not connected ({self._state})")
            await self._dispatch(ERROR, {"event": name, "message": "Not connected"})
            return None

        try:
            if ack:
                return await self._transport.call(name, payload, self.settings.ack_timeout)
            await self._transport.emit(name, payload)
        except Exception as e:
            logger.warning(f"Failed to emit {name}: {e}")
            await self._dispatch(ERROR, {"event": name, "message": str(e) or type(e).__name__})
        return None

    async def _attempt(self) -> bool:
        auth = {"token": self.session.token} if self.session.token else None
        try:
            await self._transport.connect(auth, self.settings.handshake_timeout)
        except Exception as e:
            logger.warning(f"Realtime connection to {self.settings.url} failed: {e}")
            await self._dispatch(ERROR, {"event": CONNECT, "message": str(e) or type(e).__name__})
            return False
        await self._on_connected()
        return True

    async def _on_connected(self) -> None:
        self.session.sid = self._transport.sid
        self.session.connected_at = self._clock()
        self.session.retry_count = 0
        logger.info(f"Realtime connection established (sid={self.session.sid})")
        await self._set_state(ConnectionState.CONNECTED)
        await self._dispatch(CONNECT)
        for sticky in list(self._stickies.values()):
            await self._announce(sticky)

    async def _announce(self, sticky: _StickyAnnouncement) -> None:
        payload = sticky.payload_factory()
        if sticky.on_ack is None:
            await self.emit(sticky.name, payload)
            return
        response = await self.emit(sticky.name, payload, ack=True)
        if response is not None:
            try:
                await _call_handler(sticky.on_ack, response)
            except Exception as e:
                logger.error(f"Acknowledgement handler for {sticky.name} failed: {e}", exc_info=True)

    async def _on_transport_disconnect(self, *args: Any) -> None:
        if self._closing or self._state is not ConnectionState.CONNECTED:
            return
        reason = args[0] if args else None
        logger.warning(f"Realtime connection lost ({reason}), reconnecting")
        self.session.sid = None
        await self._set_state(ConnectionState.RECONNECTING)
        await self._dispatch(DISCONNECT, reason)
        self._start_retry_loop()

    def _start_retry_loop(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            return
        self._retry_task = asyncio.create_task(self._retry_loop())

    async def _retry_loop(self) -> None:
        await self._set_state(ConnectionState.RECONNECTING)
        delay = self.settings.retry_delay
        while self.session.retry_count < self.settings.max_attempts:
            await self._sleep(delay)
            if self._closing:
                return
            self.session.retry_count += 1
            logger.info(
                f"Reconnection attempt {self.session.retry_count}/{self.settings.max_attempts}"
            )
            # A drop while re-announcing lands here with the state back at reconnecting
            if await self._attempt() and self._state is ConnectionState.CONNECTED:
                return
            if self._closing:
                return

        logger.error(f"Giving up after {self.session.retry_count} reconnection attempts")
        await self._set_state(ConnectionState.FAILED)
        await self._dispatch(CONNECT_FAILED, {"attempts": self.session.retry_count})

    async def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Connection state {self._state} -> {state}")
        self._state = state
        for handler in list(self._state_handlers):
            try:
                await _call_handler(handler, state)
            except Exception as e:
                logger.error(f"State handler failed: {e}", exc_info=True)

    async def _dispatch(self, name: str, *args: Any) -> None:
        for handler in list(self._handlers.get(name, ())):
            try:
                await _call_handler(handler, *args)
            except Exception as e:
                logger.error(f"Handler for {name} failed: {e}", exc_info=True)
