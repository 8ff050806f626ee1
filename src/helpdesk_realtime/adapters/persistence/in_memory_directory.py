"""In-memory directory and ticket repositories seeded from the roster."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.errors import NotFoundError
from helpdesk_realtime.domain.models.viewer import UserType

if TYPE_CHECKING:
    from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket
    from helpdesk_realtime.domain.models.roster import Roster

logger = logging.getLogger(__name__)


class InMemoryDirectoryRepository:
    """Directory of admins and agents held in memory."""

    def __init__(self, roster: Roster) -> None:
        """Initialize from a roster.

        Args:
            roster: Admins and agents to serve, in roster order.
        """
        self._users: dict[str, DirectoryUser] = {u.id: u for u in roster.admins + roster.agents}
        self._slugs: dict[str, str] = {a.slug: a.id for a in roster.agents if a.slug}
        self._tokens: dict[str, str] = {u.token: u.id for u in self._users.values() if u.token}

    async def get_user(self, user_id: str) -> DirectoryUser | None:
        return self._users.get(user_id)

    async def get_agent(self, agent_id: str) -> DirectoryUser | None:
        user = self._users.get(agent_id) or self._users.get(self._slugs.get(agent_id, ""))
        if user is None or user.type is not UserType.AGENT:
            return None
        return user

    async def find_by_token(self, token: str) -> DirectoryUser | None:
        user_id = self._tokens.get(token)
        return self._users.get(user_id) if user_id else None

    async def list_agents(self) -> list[DirectoryUser]:
        return [u for u in self._users.values() if u.type is UserType.AGENT]

    async def list_admins(self) -> list[DirectoryUser]:
        return [u for u in self._users.values() if u.type is UserType.ADMIN]


class InMemoryTicketRepository:
    """Tickets held in memory."""

    def __init__(self, roster: Roster) -> None:
        self._tickets: dict[str, Ticket] = {t.ticket_id: t for t in roster.tickets}
        self._lock = asyncio.Lock()

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        return self._tickets.get(ticket_id)

    async def set_assignee(self, ticket_id: str, assignee_id: str | None) -> Ticket:
        async with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            updated = ticket.model_copy(update={"assignee_id": assignee_id})
            self._tickets[ticket_id] = updated
            logger.debug(f"Stored assignee {assignee_id} for ticket {ticket_id}")
            return updated
