"""Protocol for broadcasting presence updates."""

from typing import Protocol

from helpdesk_realtime.domain.models.presence import PresenceRecord


class PresenceBroadcasterProtocol(Protocol):
    """Protocol for fanning presence changes out to every connected session."""

    async def broadcast_presence(self, record: PresenceRecord) -> None:
        """Broadcast an ``agent:presence:update`` for one agent.

        Implementations must not raise on transport failures; the status change
        has already been applied when this is called.

        Args:
            record: The agent's presence after the change.
        """
        ...
