"""Protocol for broadcasting ticket assignment changes."""

from typing import Protocol

from helpdesk_realtime.domain.models.directory import Ticket


class TicketBroadcasterProtocol(Protocol):
    """Protocol for notifying open ticket pages about assignment changes."""

    async def broadcast_assignment(self, ticket: Ticket) -> None:
        """Broadcast ``ticket:assignment:changed`` with the ticket's current assignee."""
        ...
