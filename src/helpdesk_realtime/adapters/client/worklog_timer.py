"""Automatic work timer of one open ticket page."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from helpdesk_realtime.domain.errors import ApiError, WorklogValidationError
from helpdesk_realtime.domain.models.directory import normalize_assignee
from helpdesk_realtime.domain.models.events import TICKET_ASSIGNMENT_CHANGED

if TYPE_CHECKING:
    from helpdesk_realtime.adapters.client.connection_manager import ConnectionManager
    from helpdesk_realtime.domain.contracts.beacon_sender import BeaconSenderProtocol
    from helpdesk_realtime.domain.contracts.worklog_api import WorklogApiProtocol
    from helpdesk_realtime.domain.models.worklog import WorklogEntry

logger = logging.getLogger(__name__)

AUTO_STOP_PATH = "/api/worklogs/auto/stop"


class TimerState(StrEnum):
    """Lifecycle of the automatic timer."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(StrEnum):
    """Why an automatic entry was closed."""

    MANUAL = "manual"
    UNASSIGNED = "unassigned"
    REASSIGNED = "reassigned"
    UNMOUNT = "unmount"
    PAGE_UNLOAD = "page_unload"


class WorklogTimerController:
    """Starts and stops the automatic worklog of a ticket page in step with its assignee.

    Before starting, the server is asked for an unfinished entry of the assignee
    on this ticket and that entry is adopted if found, so reloading the page
    never opens a second entry. Starts and stops are serialized per controller.
    """

    def __init__(
        self,
        api: WorklogApiProtocol,
        beacon: BeaconSenderProtocol,
        ticket_id: str,
        connection: ConnectionManager | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            api: Worklog REST collaborator.
            beacon: Sends the unload-time stop without waiting.
            ticket_id: Ticket shown on the page.
            connection: If given, assignment changes are followed in realtime.
            notify: Shows a transient message to the user when a call fails.
        """
        self._api = api
        self._beacon = beacon
        self.ticket_id = ticket_id
        self._connection = connection
        self._notify = notify
        self._lock = asyncio.Lock()
        self.state = TimerState.IDLE
        self.active: WorklogEntry | None = None
        self.assignee_id: str | None = None
        self._mounted = False

    async def mount(self, assignee_id: str | None) -> None:
        """Start following the ticket with its current assignee."""
        self._mounted = True
        if self._connection is not None:
            self._connection.on_event(TICKET_ASSIGNMENT_CHANGED, self._on_assignment_event)
        await self.on_assignment_changed(assignee_id)

    async def on_assignment_changed(self, assignee_id: str | None) -> None:
        """React to a (possibly unchanged) assignee.

        A running timer of a different agent is stopped; a non-null assignee
        without a running timer gets one.
        """
        assignee = normalize_assignee(assignee_id)
        async with self._lock:
            if not self._mounted:
                return
            if self.active is not None and self.active.agent_id != assignee:
                reason = StopReason.UNASSIGNED if assignee is None else StopReason.REASSIGNED
                await self._stop_locked(reason)
            self.assignee_id = assignee
            if assignee is not None and self.active is None:
                await self._start_locked(assignee)

    async def stop(self, reason: str = StopReason.MANUAL) -> None:
        """Stop the running timer, if any."""
        async with self._lock:
            await self._stop_locked(reason)

    async def unmount(self) -> None:
        """Leave the page normally, stopping the timer with a regular request."""
        self._unsubscribe()
        async with self._lock:
            self._mounted = False
            await self._stop_locked(StopReason.UNMOUNT)

    def unload(self) -> bool:
        """Leave the page abruptly.

        Synchronous on purpose: the stop goes out as a beacon and nothing waits
        for its response. The server side treats a repeated stop as a no-op.

        Returns:
            True if a stop beacon was queued.
        """
        self._unsubscribe()
        self._mounted = False
        entry = self.active
        if entry is None:
            return False
        self.active = None
        self.state = TimerState.STOPPED
        return self._send_stop_beacon(entry)

    async def create_manual(
        self,
        agent_id: str,
        ticket_id: str,
        started_at: datetime,
        ended_at: datetime,
        description: str | None = None,
    ) -> WorklogEntry:
        """Record a manually entered interval; the running timer is not touched.

        Raises:
            WorklogValidationError: If ``ended_at`` is not after ``started_at``.
            ApiError: If the server rejects the entry.
        """
        if ended_at <= started_at:
            raise WorklogValidationError("End time must be after start time")
        return await self._api.create_manual_worklog(
            agent_id, ticket_id, started_at, ended_at, description
        )

    async def _start_locked(self, agent_id: str) -> None:
        try:
            entry = await self._api.find_active_worklog(agent_id, self.ticket_id)
            if entry is not None:
                logger.info(f"Adopted running worklog {entry.id} on ticket {self.ticket_id}")
            else:
                entry = await self._api.auto_start_worklog(agent_id, self.ticket_id)
                logger.info(f"Started worklog {entry.id} on ticket {self.ticket_id}")
        except ApiError as e:
            logger.warning(f"Could not start worklog on ticket {self.ticket_id}: {e}")
            self._report(f"Time tracking could not start: {e.message}")
            return
        if not self._mounted:
            # The page unloaded while the start was in flight
            logger.info(f"Page left before worklog {entry.id} was tracked, stopping it")
            self.state = TimerState.STOPPED
            self._send_stop_beacon(entry)
            return
        self.active = entry
        self.state = TimerState.RUNNING

    def _send_stop_beacon(self, entry: WorklogEntry) -> bool:
        queued = self._beacon.send_beacon(
            AUTO_STOP_PATH,
            {
                "agentId": entry.agent_id,
                "ticketId": self.ticket_id,
                "worklogId": entry.id,
                "stopReason": StopReason.PAGE_UNLOAD.value,
            },
        )
        if not queued:
            logger.warning(f"Could not queue unload stop of worklog {entry.id}")
        return queued

    async def _stop_locked(self, reason: str) -> None:
        entry = self.active
        if entry is None:
            return
        self.active = None
        self.state = TimerState.STOPPED
        try:
            await self._api.auto_stop_worklog(entry.agent_id, self.ticket_id, entry.id, reason)
            logger.info(f"Stopped worklog {entry.id} on ticket {self.ticket_id} ({reason})")
        except ApiError as e:
            logger.warning(f"Could not stop worklog {entry.id}: {e}")
            self._report(f"Time tracking could not stop: {e.message}")

    async def _on_assignment_event(self, data: Any) -> None:
        if not isinstance(data, dict) or str(data.get("ticketId")) != self.ticket_id:
            return
        await self.on_assignment_changed(data.get("assigneeId"))

    def _unsubscribe(self) -> None:
        if self._connection is not None:
            self._connection.off_event(TICKET_ASSIGNMENT_CHANGED, self._on_assignment_event)

    def _report(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)
