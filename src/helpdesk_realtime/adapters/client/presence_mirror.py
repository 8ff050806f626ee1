"""Client-side mirror of agent presence."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from helpdesk_realtime.domain.errors import ApiError
from helpdesk_realtime.domain.models.events import AGENT_PRESENCE_UPDATE
from helpdesk_realtime.domain.models.presence import PresenceRecord, PresenceStatus

if TYPE_CHECKING:
    from helpdesk_realtime.adapters.client.connection_manager import ConnectionManager
    from helpdesk_realtime.domain.contracts.presence_api import PresenceApiProtocol

logger = logging.getLogger(__name__)

PresenceListener = Callable[[PresenceRecord], None]


class PresenceMirror:
    """Seeds presence from REST and keeps it current from realtime deltas.

    Records are keyed by agent id. The slug is only a lookup alias, so a delta
    identified by either resolves to the same agent.
    """

    def __init__(
        self,
        api: PresenceApiProtocol,
        connection: ConnectionManager,
        on_change: PresenceListener | None = None,
    ) -> None:
        self._api = api
        self._connection = connection
        self._on_change = on_change
        self._records: dict[str, PresenceRecord] = {}
        self._aliases: dict[str, str] = {}
        self.seeded = False

    async def start(self) -> None:
        """Subscribe to deltas, then seed from the REST snapshot."""
        self._connection.on_event(AGENT_PRESENCE_UPDATE, self._on_update)
        try:
            snapshot = await self._api.fetch_presence()
        except ApiError as e:
            logger.warning(f"Could not load agent presence, showing live updates only: {e}")
            return

        for record in snapshot:
            current = self._records.get(record.agent_id)
            # A delta that arrived while the snapshot was loading is newer
            if current is not None and _is_newer_or_same(current, record):
                continue
            self._store(record)
        self.seeded = True
        logger.info(f"Seeded presence of {len(snapshot)} agent(s)")

    def stop(self) -> None:
        self._connection.off_event(AGENT_PRESENCE_UPDATE, self._on_update)

    def get(self, agent: str) -> PresenceRecord | None:
        """Look up an agent by id or slug."""
        agent_id = self._aliases.get(agent, agent)
        return self._records.get(agent_id)

    def status(self, agent: str) -> PresenceStatus:
        record = self.get(agent)
        return record.presence_status if record else PresenceStatus.OFFLINE

    def snapshot(self) -> list[PresenceRecord]:
        return list(self._records.values())

    def apply(self, record: PresenceRecord) -> PresenceRecord:
        """Apply one presence delta; unknown agents are added."""
        agent_id = self._resolve(record)
        if agent_id != record.agent_id:
            record = record.model_copy(update={"agent_id": agent_id})
        self._store(record)
        if self._on_change is not None:
            try:
                self._on_change(record)
            except Exception as e:
                logger.error(f"Presence listener failed: {e}", exc_info=True)
        return record

    def _on_update(self, data: Any) -> None:
        try:
            record = PresenceRecord.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed presence update: {e}")
            return
        self.apply(record)

    def _resolve(self, record: PresenceRecord) -> str:
        if record.agent_id in self._records:
            return record.agent_id
        for key in (record.agent_slug, record.agent_id):
            if key and key in self._aliases:
                return self._aliases[key]
        return record.agent_id

    def _store(self, record: PresenceRecord) -> None:
        previous = self._records.get(record.agent_id)
        if record.agent_slug is None and previous is not None and previous.agent_slug:
            record = record.model_copy(update={"agent_slug": previous.agent_slug})
        self._records[record.agent_id] = record
        if record.agent_slug:
            self._aliases[record.agent_slug] = record.agent_id


def _is_newer_or_same(current: PresenceRecord, seeded: PresenceRecord) -> bool:
    if current.last_seen_at is None:
        return False
    if seeded.last_seen_at is None:
        return True
    return current.last_seen_at >= seeded.last_seen_at
