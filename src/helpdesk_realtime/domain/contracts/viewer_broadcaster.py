"""Protocol for broadcasting ticket viewer changes."""

from typing import Protocol

from helpdesk_realtime.domain.models.viewer import ViewerEntry


class ViewerBroadcasterProtocol(Protocol):
    """Protocol for notifying the viewers of a ticket about joins and leaves."""

    async def broadcast_joined(
        self, ticket_id: str, viewer: ViewerEntry, skip_sid: str | None = None
    ) -> None:
        """Broadcast ``ticket:viewer:joined`` to the ticket room.

        Args:
            ticket_id: The ticket being viewed.
            viewer: The viewer that joined.
            skip_sid: Session of the joiner, which receives the full list in its ack instead.
        """
        ...

    async def broadcast_left(self, ticket_id: str, user_id: str, skip_sid: str | None = None) -> None:
        """Broadcast ``ticket:viewer:left`` to the ticket room.

        Args:
            ticket_id: The ticket that was left.
            user_id: The user that left.
            skip_sid: Optional session to exclude.
        """
        ...
