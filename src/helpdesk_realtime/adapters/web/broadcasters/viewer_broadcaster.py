"""Broadcaster for ticket viewer joins and leaves."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.contracts.viewer_broadcaster import ViewerBroadcasterProtocol
from helpdesk_realtime.domain.models.events import (
    TICKET_VIEWER_JOINED,
    TICKET_VIEWER_LEFT,
    ticket_room,
)

if TYPE_CHECKING:
    import socketio

    from helpdesk_realtime.domain.models.viewer import ViewerEntry

logger = logging.getLogger(__name__)


class ViewerBroadcaster(ViewerBroadcasterProtocol):
    """Broadcasts viewer changes to the room of the ticket."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        """Initialize with the realtime server."""
        self._sio = sio

    async def broadcast_joined(
        self, ticket_id: str, viewer: ViewerEntry, skip_sid: str | None = None
    ) -> None:
        """Broadcast that a viewer joined, excluding the joiner's own session."""
        room = ticket_room(ticket_id)
        try:
            await self._sio.emit(
                TICKET_VIEWER_JOINED,
                {"ticketId": ticket_id, "viewer": viewer.to_payload()},
                room=room,
                skip_sid=skip_sid,
            )
        except Exception as e:
            logger.error(f"Failed to broadcast viewer join to {room}: {e}", exc_info=True)

    async def broadcast_left(self, ticket_id: str, user_id: str, skip_sid: str | None = None) -> None:
        """Broadcast that a viewer left to the remaining viewers."""
        room = ticket_room(ticket_id)
        try:
            await self._sio.emit(
                TICKET_VIEWER_LEFT,
                {"ticketId": ticket_id, "userId": user_id},
                room=room,
                skip_sid=skip_sid,
            )
        except Exception as e:
            logger.error(f"Failed to broadcast viewer leave to {room}: {e}", exc_info=True)
