"""Broadcaster for ticket assignment changes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.contracts.ticket_broadcaster import TicketBroadcasterProtocol
from helpdesk_realtime.domain.models.events import TICKET_ASSIGNMENT_CHANGED, ticket_room

if TYPE_CHECKING:
    import socketio

    from helpdesk_realtime.domain.models.directory import Ticket

logger = logging.getLogger(__name__)


class TicketBroadcaster(TicketBroadcasterProtocol):
    """Broadcasts assignment changes to the room of the ticket."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        self._sio = sio

    async def broadcast_assignment(self, ticket: Ticket) -> None:
        room = ticket_room(ticket.ticket_id)
        try:
            await self._sio.emit(
                TICKET_ASSIGNMENT_CHANGED,
                {"ticketId": ticket.ticket_id, "assigneeId": ticket.assignee_id},
                room=room,
            )
        except Exception as e:
            logger.error(f"Failed to broadcast assignment change to {room}: {e}", exc_info=True)
