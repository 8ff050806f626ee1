"""Protocol for the worklog REST collaborator as seen from a client."""

from datetime import datetime
from typing import Protocol

from helpdesk_realtime.domain.models.worklog import WorklogEntry


class WorklogApiProtocol(Protocol):
    """Worklog endpoints used by the timer controller."""

    async def find_active_worklog(self, agent_id: str, ticket_id: str) -> WorklogEntry | None:
        """Return the unfinished entry for the pair, or None."""
        ...

    async def auto_start_worklog(self, agent_id: str, ticket_id: str) -> WorklogEntry:
        """Start (or return the already running) automatic entry for the pair."""
        ...

    async def auto_stop_worklog(
        self,
        agent_id: str,
        ticket_id: str,
        worklog_id: str | None = None,
        stop_reason: str | None = None,
    ) -> WorklogEntry:
        """Close the running automatic entry for the pair."""
        ...

    async def create_manual_worklog(
        self,
        agent_id: str,
        ticket_id: str,
        started_at: datetime,
        ended_at: datetime,
        description: str | None = None,
    ) -> WorklogEntry:
        """Record a closed manual entry."""
        ...
