"""Server-side worklog use cases."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from helpdesk_realtime.application.clock import Clock, utc_now
from helpdesk_realtime.application.keyed_locks import KeyedLocks
from helpdesk_realtime.domain.errors import (
    NotFoundError,
    WorklogConflictError,
    WorklogValidationError,
)
from helpdesk_realtime.domain.models.worklog import WorklogEntry, WorklogSource

if TYPE_CHECKING:
    from helpdesk_realtime.domain.ports import (
        DirectoryRepository,
        TicketRepository,
        WorklogRepository,
    )

logger = logging.getLogger(__name__)


_EDITABLE_FIELDS = frozenset({"started_at", "ended_at", "stop_reason"})


def _new_worklog_id() -> str:
    return uuid.uuid4().hex


class WorklogService:
    """Starts, stops, records and lists worklog entries.

    All automatic start/stop operations for one (agent, ticket) pair are
    serialized, which keeps at most one open entry per pair even when a start
    and a late unload-time stop race each other.
    """

    def __init__(
        self,
        repository: WorklogRepository,
        directory: DirectoryRepository,
        tickets: TicketRepository,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = _new_worklog_id,
    ) -> None:
        """Initialize with the repositories the service depends on."""
        self._repository = repository
        self._directory = directory
        self._tickets = tickets
        self._clock = clock
        self._id_factory = id_factory
        self._locks = KeyedLocks()

    async def find_active(self, agent_id: str, ticket_id: str) -> WorklogEntry | None:
        """Return the unfinished entry for the pair, if any."""
        return await self._repository.find_open(agent_id, ticket_id)

    async def auto_start(self, agent_id: str, ticket_id: str) -> tuple[WorklogEntry, bool]:
        """Start an automatic entry unless one is already running.

        Returns:
            Tuple of (entry, created) - the running entry and whether it was created by this call.

        Raises:
            NotFoundError: If the ticket or the agent does not exist.
        """
        async with self._locks.hold((agent_id, ticket_id)):
            existing = await self._repository.find_open(agent_id, ticket_id)
            if existing is not None:
                logger.debug(f"Worklog {existing.id} already active for {agent_id} on {ticket_id}")
                return existing, False

            if await self._tickets.get_ticket(ticket_id) is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if await self._directory.get_agent(agent_id) is None:
                raise NotFoundError(f"Agent {agent_id} not found")

            entry = WorklogEntry(
                id=self._id_factory(),
                agent_id=agent_id,
                ticket_id=ticket_id,
                started_at=self._clock(),
                source=WorklogSource.AUTO,
            )
            await self._repository.add(entry)
            logger.info(f"Started worklog {entry.id} for agent {agent_id} on ticket {ticket_id}")
            return entry, True

    async def auto_stop(
        self,
        agent_id: str,
        ticket_id: str,
        worklog_id: str | None = None,
        stop_reason: str | None = None,
    ) -> tuple[WorklogEntry, bool]:
        """Close the running entry of the pair, or the given entry.

        Stopping an entry that is already closed is a no-op.

        Returns:
            Tuple of (entry, stopped) - the entry and whether this call closed it.

        Raises:
            NotFoundError: If there is no such entry.
        """
        async with self._locks.hold((agent_id, ticket_id)):
            if worklog_id:
                entry = await self._repository.get(worklog_id)
                if entry is not None and (entry.agent_id, entry.ticket_id) != (agent_id, ticket_id):
                    entry = None
            else:
                entry = await self._repository.find_open(agent_id, ticket_id)
            if entry is None:
                raise NotFoundError("No active worklog found")
            if not entry.is_active:
                logger.debug(f"Worklog {entry.id} already stopped")
                return entry, False

            closed = entry.close(self._clock(), stop_reason)
            await self._repository.update(closed)
            logger.info(
                f"Stopped worklog {closed.id} for agent {closed.agent_id} on ticket "
                f"{closed.ticket_id} after {closed.duration_formatted}"
            )
            return closed, True

    async def get(self, worklog_id: str) -> WorklogEntry:
        """Return one entry.

        Raises:
            NotFoundError: If there is no such entry.
        """
        entry = await self._repository.get(worklog_id)
        if entry is None:
            raise NotFoundError(f"Worklog {worklog_id} not found")
        return entry

    async def update(self, worklog_id: str, changes: Mapping[str, Any]) -> WorklogEntry:
        """Correct the interval or stop reason of an entry.

        Args:
            worklog_id: Entry to edit.
            changes: Any of ``started_at``, ``ended_at`` and ``stop_reason``. An
                ``ended_at`` of None reopens the entry.

        Raises:
            NotFoundError: If there is no such entry.
            WorklogValidationError: If the result is not a valid interval.
            WorklogConflictError: If it would reopen an entry while another one of
                the pair is running.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise WorklogValidationError(f"Cannot edit {', '.join(sorted(unknown))}")
        if "started_at" in changes and changes["started_at"] is None:
            raise WorklogValidationError("Start time is required")

        current = await self.get(worklog_id)
        async with self._locks.hold((current.agent_id, current.ticket_id)):
            entry = await self.get(worklog_id)
            updated = entry.model_copy(update=dict(changes))
            if updated.ended_at is not None and updated.ended_at <= updated.started_at:
                raise WorklogValidationError("End time must be after start time")
            if updated.is_active and not entry.is_active:
                running = await self._repository.find_open(entry.agent_id, entry.ticket_id)
                if running is not None:
                    raise WorklogConflictError(
                        f"Worklog {running.id} is already running for this agent and ticket"
                    )

            await self._repository.update(updated)
            logger.info(f"Updated worklog {updated.id}: {', '.join(sorted(changes))}")
            return updated

    async def create_manual(
        self,
        agent_id: str,
        ticket_id: str,
        started_at: datetime,
        ended_at: datetime,
        description: str | None = None,
    ) -> WorklogEntry:
        """Record a closed, manually entered interval.

        Manual entries never affect the running automatic entry of the pair.

        Raises:
            WorklogValidationError: If ``ended_at`` is not after ``started_at``, the
                agent is unknown, or the ticket is unknown or unassigned.
        """
        if ended_at <= started_at:
            raise WorklogValidationError("End time must be after start time")
        if await self._directory.get_agent(agent_id) is None:
            raise WorklogValidationError(f"Agent {agent_id} does not exist")
        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise WorklogValidationError(f"Ticket {ticket_id} does not exist")
        if ticket.assignee_id is None:
            raise WorklogValidationError(f"Ticket {ticket_id} is not assigned")

        entry = WorklogEntry(
            id=self._id_factory(),
            agent_id=agent_id,
            ticket_id=ticket_id,
            started_at=started_at,
            ended_at=ended_at,
            source=WorklogSource.MANUAL,
            description=description or None,
        )
        await self._repository.add(entry)
        logger.info(
            f"Recorded manual worklog {entry.id} of {entry.duration_formatted} "
            f"for agent {agent_id} on ticket {ticket_id}"
        )
        return entry

    async def list_worklogs(
        self,
        ticket_id: str | None = None,
        agent_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[WorklogEntry]:
        """List entries matching the filters, most recently started first.

        Args:
            ticket_id: Only entries of this ticket.
            agent_id: Only entries of this agent.
            start_date: Only entries started at or after this time.
            end_date: Only entries started at or before this time.
        """
        if start_date and end_date and end_date < start_date:
            raise WorklogValidationError("endDate must not be before startDate")
        entries = await self._repository.query(
            ticket_id=ticket_id,
            agent_id=agent_id,
            started_from=start_date,
            started_until=end_date,
        )
        return sorted(entries, key=lambda e: e.started_at, reverse=True)
