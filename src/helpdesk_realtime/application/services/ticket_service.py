"""Ticket assignment use cases."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.errors import NotFoundError
from helpdesk_realtime.domain.models.directory import Ticket, normalize_assignee

if TYPE_CHECKING:
    from helpdesk_realtime.domain.contracts.ticket_broadcaster import TicketBroadcasterProtocol
    from helpdesk_realtime.domain.ports import DirectoryRepository, TicketRepository

logger = logging.getLogger(__name__)


class TicketService:
    """Reads tickets and changes their assignee, notifying open ticket pages."""

    def __init__(
        self,
        tickets: TicketRepository,
        directory: DirectoryRepository,
        broadcaster: TicketBroadcasterProtocol,
    ) -> None:
        self._tickets = tickets
        self._directory = directory
        self._broadcaster = broadcaster

    async def get(self, ticket_id: str) -> Ticket:
        """Return the ticket.

        Raises:
            NotFoundError: If the ticket does not exist.
        """
        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def assign(self, ticket_id: str, assignee_id: str | None) -> Ticket:
        """Assign the ticket to an agent, or unassign it with ``None``.

        Raises:
            NotFoundError: If the ticket or the agent does not exist.
        """
        assignee_id = normalize_assignee(assignee_id)
        current = await self.get(ticket_id)
        if assignee_id is not None:
            agent = await self._directory.get_agent(assignee_id)
            if agent is None:
                raise NotFoundError(f"Agent {assignee_id} not found")
            assignee_id = agent.id

        if current.assignee_id == assignee_id:
            return current

        ticket = await self._tickets.set_assignee(ticket_id, assignee_id)
        logger.info(
            f"Ticket {ticket_id} reassigned from {current.assignee_id or 'nobody'} "
            f"to {ticket.assignee_id or 'nobody'}"
        )
        await self._broadcaster.broadcast_assignment(ticket)
        return ticket
