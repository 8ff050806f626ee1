"""Authoritative presence of every agent."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.application.clock import Clock, utc_now
from helpdesk_realtime.application.keyed_locks import KeyedLocks
from helpdesk_realtime.domain.errors import PresenceValidationError
from helpdesk_realtime.domain.models.presence import PresenceRecord, PresenceStatus

if TYPE_CHECKING:
    from helpdesk_realtime.domain.contracts.presence_broadcaster import (
        PresenceBroadcasterProtocol,
    )

logger = logging.getLogger(__name__)


class PresenceStore:
    """Keeps one presence record per agent and the sessions each agent holds.

    Records are created lazily in the ``offline`` state and never deleted.
    ``offline`` can only be reached when an agent's last session detaches;
    every other status is set explicitly through :meth:`set_status`. Each change
    is broadcast while the agent's lock is held, so subscribers observe changes
    for one agent in the order they were applied.
    """

    def __init__(
        self,
        broadcaster: PresenceBroadcasterProtocol,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the presence store.

        Args:
            broadcaster: Fans presence changes out to connected clients.
            clock: Time source for ``last_seen_at``.
        """
        self._broadcaster = broadcaster
        self._clock = clock
        self._records: dict[str, PresenceRecord] = {}
        self._sessions: dict[str, set[str]] = {}
        self._locks = KeyedLocks()

    def register_agent(self, agent_id: str, agent_slug: str | None = None) -> PresenceRecord:
        """Make an agent known without changing its status.

        Used to seed the store from the roster so snapshots include agents who
        have never connected.
        """
        record = self._records.get(agent_id)
        if record is None:
            record = PresenceRecord(agent_id=agent_id, agent_slug=agent_slug)
            self._records[agent_id] = record
        elif agent_slug and record.agent_slug != agent_slug:
            record = record.model_copy(update={"agent_slug": agent_slug})
            self._records[agent_id] = record
        return record

    def get(self, agent_id: str) -> PresenceRecord:
        """Return the agent's record, ``offline`` if it was never seen."""
        return self._records.get(agent_id) or PresenceRecord(agent_id=agent_id)

    def snapshot(self, agent_ids: list[str] | None = None) -> list[PresenceRecord]:
        """Return the records of the given agents, or of every known agent."""
        if agent_ids is None:
            return list(self._records.values())
        return [self.get(agent_id) for agent_id in agent_ids]

    def session_count(self, agent_id: str) -> int:
        """Number of live sessions held by the agent."""
        return len(self._sessions.get(agent_id, ()))

    async def set_status(self, agent_id: str, status: PresenceStatus | str) -> PresenceRecord:
        """Explicitly set an agent's status.

        Args:
            agent_id: The agent whose status changes.
            status: The new status; ``offline`` is not allowed.

        Returns:
            The updated record.

        Raises:
            PresenceValidationError: If the status is unknown or ``offline``.
        """
        try:
            new_status = PresenceStatus(status)
        except ValueError as e:
            raise PresenceValidationError(
                f"Invalid presence status '{status}'. Valid values: {', '.join(PresenceStatus.values())}"
            ) from e
        if new_status is PresenceStatus.OFFLINE:
            raise PresenceValidationError(
                "Presence status 'offline' is set automatically when the agent disconnects"
            )

        async with self._locks.hold(agent_id):
            record = self._apply(agent_id, new_status)
            logger.info(f"Presence of agent {agent_id} set to {new_status}")
            await self._broadcaster.broadcast_presence(record)
            return record

    async def attach_session(self, agent_id: str, sid: str) -> PresenceRecord:
        """Record a new realtime session of an agent.

        The first session of an offline agent brings it ``online``; further
        sessions leave the status untouched.
        """
        async with self._locks.hold(agent_id):
            sessions = self._sessions.setdefault(agent_id, set())
            is_first = not sessions
            sessions.add(sid)
            record = self.get(agent_id)
            if is_first and record.is_offline:
                record = self._apply(agent_id, PresenceStatus.ONLINE)
                logger.info(f"Agent {agent_id} came online (session {sid})")
                await self._broadcaster.broadcast_presence(record)
            else:
                logger.debug(
                    f"Agent {agent_id} attached session {sid} ({len(sessions)} sessions)"
                )
            return record

    async def detach_session(self, agent_id: str, sid: str) -> PresenceRecord:
        """Forget a realtime session of an agent.

        When the last session goes away the agent becomes ``offline``.
        Unknown sessions are ignored.
        """
        async with self._locks.hold(agent_id):
            sessions = self._sessions.get(agent_id)
            if not sessions or sid not in sessions:
                return self.get(agent_id)
            sessions.discard(sid)
            if sessions:
                logger.debug(
                    f"Agent {agent_id} detached session {sid} ({len(sessions)} remaining)"
                )
                return self.get(agent_id)

            del self._sessions[agent_id]
            record = self._apply(agent_id, PresenceStatus.OFFLINE)
            logger.info(f"Agent {agent_id} went offline (last session {sid} closed)")
            await self._broadcaster.broadcast_presence(record)
            return record

    def _apply(self, agent_id: str, status: PresenceStatus) -> PresenceRecord:
        record = self.get(agent_id).model_copy(
            update={"presence_status": status, "last_seen_at": self._clock()}
        )
        self._records[agent_id] = record
        return record
