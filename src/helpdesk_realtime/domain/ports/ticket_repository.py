"""Ticket repository port."""

from typing import Protocol

from helpdesk_realtime.domain.models.directory import Ticket


class TicketRepository(Protocol):
    """Port for reading and reassigning tickets."""

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        """Find a ticket by id."""
        ...

    async def set_assignee(self, ticket_id: str, assignee_id: str | None) -> Ticket:
        """Change the ticket's assignee and return the updated ticket."""
        ...
