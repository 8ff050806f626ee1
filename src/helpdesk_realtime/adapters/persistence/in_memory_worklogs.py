"""In-memory worklog repository."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.errors import NotFoundError

if TYPE_CHECKING:
    from helpdesk_realtime.domain.models.worklog import WorklogEntry

logger = logging.getLogger(__name__)


class InMemoryWorklogRepository:
    """Worklog entries held in memory, in insertion order."""

    def __init__(self) -> None:
        self._entries: dict[str, WorklogEntry] = {}

    async def add(self, entry: WorklogEntry) -> WorklogEntry:
        if entry.id in self._entries:
            raise ValueError(f"Worklog {entry.id} already exists")
        self._entries[entry.id] = entry
        return entry

    async def update(self, entry: WorklogEntry) -> WorklogEntry:
        if entry.id not in self._entries:
            raise NotFoundError(f"Worklog {entry.id} not found")
        self._entries[entry.id] = entry
        return entry

    async def get(self, worklog_id: str) -> WorklogEntry | None:
        return self._entries.get(worklog_id)

    async def find_open(self, agent_id: str, ticket_id: str) -> WorklogEntry | None:
        open_entries = [
            e
            for e in self._entries.values()
            if e.agent_id == agent_id and e.ticket_id == ticket_id and e.is_active
        ]
        if len(open_entries) > 1:
            logger.warning(
                f"{len(open_entries)} open worklogs for agent {agent_id} on ticket {ticket_id}"
            )
        return max(open_entries, key=lambda e: e.started_at, default=None)

    async def query(
        self,
        ticket_id: str | None = None,
        agent_id: str | None = None,
        started_from: datetime | None = None,
        started_until: datetime | None = None,
    ) -> list[WorklogEntry]:
        return [
            e
            for e in self._entries.values()
            if (ticket_id is None or e.ticket_id == ticket_id)
            and (agent_id is None or e.agent_id == agent_id)
            and (started_from is None or e.started_at >= started_from)
            and (started_until is None or e.started_at <= started_until)
        ]
