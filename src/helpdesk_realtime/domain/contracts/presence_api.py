"""Protocol for the presence and directory REST collaborators as seen from a client."""

from typing import Protocol

from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket
from helpdesk_realtime.domain.models.presence import PresenceRecord, PresenceStatus


class PresenceApiProtocol(Protocol):
    """Presence endpoints used by the presence mirror."""

    async def fetch_presence(self) -> list[PresenceRecord]:
        """Fetch the presence snapshot of every agent."""
        ...

    async def update_presence(self, agent_id: str, status: PresenceStatus) -> PresenceRecord:
        """Set an agent's status."""
        ...


class DirectoryApiProtocol(Protocol):
    """Directory endpoints used by the mention composer and ticket pages."""

    async def fetch_roster(self) -> tuple[list[DirectoryUser], list[DirectoryUser]]:
        """Fetch ``(admins, agents)``."""
        ...

    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        """Fetch one ticket."""
        ...
