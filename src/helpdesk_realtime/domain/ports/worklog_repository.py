"""Worklog repository port."""

from datetime import datetime
from typing import Protocol

from helpdesk_realtime.domain.models.worklog import WorklogEntry


class WorklogRepository(Protocol):
    """Port for storing worklog entries."""

    async def add(self, entry: WorklogEntry) -> WorklogEntry:
        """Persist a new entry."""
        ...

    async def update(self, entry: WorklogEntry) -> WorklogEntry:
        """Replace an existing entry with the same id."""
        ...

    async def get(self, worklog_id: str) -> WorklogEntry | None:
        """Find an entry by id."""
        ...

    async def find_open(self, agent_id: str, ticket_id: str) -> WorklogEntry | None:
        """Find the unfinished entry for an (agent, ticket) pair."""
        ...

    async def query(
        self,
        ticket_id: str | None = None,
        agent_id: str | None = None,
        started_from: datetime | None = None,
        started_until: datetime | None = None,
    ) -> list[WorklogEntry]:
        """List entries matching every given filter."""
        ...
