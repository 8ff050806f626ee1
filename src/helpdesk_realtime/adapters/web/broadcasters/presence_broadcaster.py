"""Broadcaster for agent presence updates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from helpdesk_realtime.domain.contracts.presence_broadcaster import PresenceBroadcasterProtocol
from helpdesk_realtime.domain.models.events import AGENT_PRESENCE_UPDATE

if TYPE_CHECKING:
    import socketio

    from helpdesk_realtime.domain.models.presence import PresenceRecord

logger = logging.getLogger(__name__)


class PresenceBroadcaster(PresenceBroadcasterProtocol):
    """Broadcasts presence updates to every connected session."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        """Initialize with the realtime server."""
        self._sio = sio

    async def broadcast_presence(self, record: PresenceRecord) -> None:
        """Broadcast an agent's presence to everyone.

        Transport failures are logged, the status change itself stands.
        """
        try:
            await self._sio.emit(AGENT_PRESENCE_UPDATE, record.to_payload())
            logger.debug(
                f"Broadcast presence of agent {record.agent_id}: {record.presence_status}"
            )
        except Exception as e:
            logger.error(
                f"Failed to broadcast presence of agent {record.agent_id}: {e}", exc_info=True
            )
