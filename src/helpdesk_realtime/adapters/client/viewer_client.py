"""Client view of who else is looking at a ticket."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from helpdesk_realtime.domain.models.events import (
    TICKET_LEAVE,
    TICKET_VIEW,
    TICKET_VIEWER_JOINED,
    TICKET_VIEWER_LEFT,
)
from helpdesk_realtime.domain.models.session import ConnectionState
from helpdesk_realtime.domain.models.viewer import ViewerEntry

if TYPE_CHECKING:
    from helpdesk_realtime.adapters.client.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class ViewerListState(StrEnum):
    """How far the local viewer list can be trusted."""

    PENDING = "pending"  # Optimistic, only ourselves
    CONFIRMED = "confirmed"  # Reconciled with the server
    DEGRADED = "degraded"  # Realtime unavailable, only ourselves


ViewerListener = Callable[[list[ViewerEntry], ViewerListState], None]


class TicketViewerClient:
    """Registers the current user as a viewer of one ticket and mirrors the others.

    The list shows the current user immediately, then reconciles with the
    server's acknowledgement. The ``ticket:view`` announcement is sticky, so every
    reconnect registers again and reconciles again. The current user is never
    removed from the list.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        ticket_id: str,
        me: ViewerEntry,
        wait_retries: int = 50,
        wait_interval: float = 0.1,
        on_change: ViewerListener | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the viewer client.

        Args:
            connection: The page's realtime connection.
            ticket_id: Ticket shown on the page.
            me: The current user.
            wait_retries: How often to check for a connection before degrading.
            wait_interval: Seconds between those checks.
            on_change: Called with the list and its state after every change.
            sleep: Waits between connection checks.
        """
        self._connection = connection
        self.ticket_id = ticket_id
        self.me = me
        self._wait_retries = wait_retries
        self._wait_interval = wait_interval
        self._on_change = on_change
        self._sleep = sleep
        self._viewers: dict[str, ViewerEntry] = {me.user_id: me}
        self.state = ViewerListState.PENDING
        self._open = False

    @property
    def viewers(self) -> list[ViewerEntry]:
        """The current user first, then everyone else in join order."""
        return list(self._viewers.values())

    @property
    def others(self) -> list[ViewerEntry]:
        return [v for v in self._viewers.values() if v.user_id != self.me.user_id]

    async def open(self) -> list[ViewerEntry]:
        """Announce the view and wait (bounded) for the server's answer."""
        self._open = True
        self._viewers = {self.me.user_id: self.me}
        self.state = ViewerListState.PENDING
        self._notify()

        self._connection.on_event(TICKET_VIEWER_JOINED, self._on_joined)
        self._connection.on_event(TICKET_VIEWER_LEFT, self._on_left)
        self._connection.on_state_change(self._on_connection_state)
        self._connection.add_sticky(TICKET_VIEW, self._view_payload, on_ack=self._reconcile)

        await self._register()
        return self.viewers

    async def close(self) -> None:
        """Stop viewing the ticket."""
        if not self._open:
            return
        self._open = False
        self._connection.remove_sticky(TICKET_VIEW)
        self._connection.off_event(TICKET_VIEWER_JOINED, self._on_joined)
        self._connection.off_event(TICKET_VIEWER_LEFT, self._on_left)
        self._connection.off_state_change(self._on_connection_state)
        if self._connection.is_connected:
            await self._connection.emit(TICKET_LEAVE, {"ticketId": self.ticket_id})
        logger.info(f"Stopped viewing ticket {self.ticket_id}")

    async def _register(self) -> None:
        for _ in range(self._wait_retries + 1):
            if self.state is ViewerListState.CONFIRMED:
                # A (re)connect already announced the view through the sticky
                return
            if self._connection.state is ConnectionState.FAILED:
                break
            if self._connection.is_connected:
                ack = await self._connection.emit(TICKET_VIEW, self._view_payload(), ack=True)
                if ack is not None:
                    await self._reconcile(ack)
                    return
                break
            await self._sleep(self._wait_interval)

        self._degrade("no realtime connection")

    def _view_payload(self) -> dict[str, Any]:
        return {"ticketId": self.ticket_id, **self.me.to_payload()}

    async def _reconcile(self, ack: Any) -> None:
        if not self._open:
            return
        if not isinstance(ack, dict) or not ack.get("success"):
            message = ack.get("message") if isinstance(ack, dict) else ack
            self._degrade(f"view rejected: {message}")
            return

        others: dict[str, ViewerEntry] = {}
        for item in ack.get("viewers") or []:
            try:
                viewer = ViewerEntry.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed viewer in ack for ticket {self.ticket_id}: {e}")
                continue
            if viewer.user_id != self.me.user_id:
                others[viewer.user_id] = viewer

        self._viewers = {self.me.user_id: self.me, **others}
        self.state = ViewerListState.CONFIRMED
        logger.debug(f"Viewers of ticket {self.ticket_id} confirmed: {len(self._viewers)}")
        self._notify()

    def _degrade(self, reason: str) -> None:
        logger.warning(f"Viewer list of ticket {self.ticket_id} degraded: {reason}")
        self._viewers = {self.me.user_id: self.me}
        self.state = ViewerListState.DEGRADED
        self._notify()

    def _on_connection_state(self, state: ConnectionState) -> None:
        if state is ConnectionState.FAILED and self._open:
            self._degrade("reconnection gave up")

    def _on_joined(self, data: Any) -> None:
        if not isinstance(data, dict) or str(data.get("ticketId")) != self.ticket_id:
            return
        try:
            viewer = ViewerEntry.model_validate(data.get("viewer"))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed viewer join for ticket {self.ticket_id}: {e}")
            return
        if viewer.user_id == self.me.user_id:
            return
        if self._viewers.get(viewer.user_id) == viewer:
            return
        self._viewers[viewer.user_id] = viewer
        self._notify()

    def _on_left(self, data: Any) -> None:
        if not isinstance(data, dict) or str(data.get("ticketId")) != self.ticket_id:
            return
        user_id = str(data.get("userId"))
        if user_id == self.me.user_id:
            return
        if self._viewers.pop(user_id, None) is not None:
            self._notify()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.viewers, self.state)
        except Exception as e:
            logger.error(f"Viewer listener failed: {e}", exc_info=True)
