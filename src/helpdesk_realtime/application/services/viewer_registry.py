"""Authoritative registry of who is viewing which ticket."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from helpdesk_realtime.application.clock import Clock, utc_now
from helpdesk_realtime.application.keyed_locks import KeyedLocks
from helpdesk_realtime.domain.models.viewer import ViewerEntry

if TYPE_CHECKING:
    from helpdesk_realtime.domain.contracts.viewer_broadcaster import ViewerBroadcasterProtocol

logger = logging.getLogger(__name__)


@dataclass
class _ViewerSlot:
    viewer: ViewerEntry
    last_seen_at: datetime
    sids: set[str] = field(default_factory=set)


class ViewerRegistry:
    """Tracks the viewers of every ticket page.

    There is at most one entry per (ticket, user). A user may hold the entry from
    several sessions at once (e.g. two browser tabs); the entry goes away when the
    last of those sessions leaves or disconnects. A disconnect only removes
    entries the disconnecting session still holds, so re-joining from a new
    session is never undone by a late disconnect of the old one.
    """

    def __init__(self, broadcaster: ViewerBroadcasterProtocol, clock: Clock = utc_now) -> None:
        """Initialize the viewer registry.

        Args:
            broadcaster: Notifies ticket rooms about joins and leaves.
            clock: Time source for ``last_seen_at``.
        """
        self._broadcaster = broadcaster
        self._clock = clock
        # Insertion order is join order
        self._tickets: dict[str, dict[str, _ViewerSlot]] = {}
        # sid -> {ticket_id: user_id}
        self._session_claims: dict[str, dict[str, str]] = {}
        self._locks = KeyedLocks()

    async def view(self, ticket_id: str, viewer: ViewerEntry, sid: str) -> list[ViewerEntry]:
        """Register a viewer of a ticket from a session.

        Idempotent per user: repeating the call refreshes ``last_seen_at`` and
        binds the entry to ``sid`` as well, without a second join broadcast.

        Args:
            ticket_id: The ticket being viewed.
            viewer: Who is viewing.
            sid: Session the view was announced from.

        Returns:
            Every viewer of the ticket, the caller included.
        """
        async with self._locks.hold(ticket_id):
            claims = self._session_claims.setdefault(sid, {})
            previous_user = claims.get(ticket_id)
            if previous_user is not None and previous_user != viewer.user_id:
                await self._release(ticket_id, previous_user, sid)
                claims = self._session_claims.setdefault(sid, {})

            viewers = self._tickets.setdefault(ticket_id, {})
            slot = viewers.get(viewer.user_id)
            is_new = slot is None
            if slot is None:
                slot = _ViewerSlot(viewer=viewer, last_seen_at=self._clock())
                viewers[viewer.user_id] = slot
            else:
                slot.viewer = viewer
                slot.last_seen_at = self._clock()
            slot.sids.add(sid)
            claims[ticket_id] = viewer.user_id

            if is_new:
                logger.info(
                    f"Viewer {viewer.user_id} joined ticket {ticket_id}. Viewers: {len(viewers)}"
                )
                await self._broadcaster.broadcast_joined(ticket_id, viewer, skip_sid=sid)
            else:
                logger.debug(f"Viewer {viewer.user_id} refreshed view of ticket {ticket_id}")

            return [s.viewer for s in viewers.values()]

    async def leave(self, ticket_id: str, user_id: str, sid: str | None = None) -> bool:
        """Remove a viewer from a ticket.

        Args:
            ticket_id: The ticket being left.
            user_id: The user leaving.
            sid: If given, only this session's hold on the entry is released and
                the entry stays while other sessions of the user still hold it.

        Returns:
            True if the entry was removed and ``ticket:viewer:left`` broadcast.
        """
        async with self._locks.hold(ticket_id):
            return await self._release(ticket_id, user_id, sid)

    async def leave_session(self, sid: str) -> list[str]:
        """Release every ticket the session is viewing.

        Returns:
            The tickets from which a viewer was removed.
        """
        claims = self._session_claims.pop(sid, {})
        left: list[str] = []
        for ticket_id, user_id in claims.items():
            async with self._locks.hold(ticket_id):
                if await self._release(ticket_id, user_id, sid):
                    left.append(ticket_id)
        return left

    def viewers(self, ticket_id: str) -> list[ViewerEntry]:
        """Current viewers of a ticket in join order."""
        return [s.viewer for s in self._tickets.get(ticket_id, {}).values()]

    def user_for_session(self, sid: str, ticket_id: str) -> str | None:
        """The user a session announced on a ticket, if any."""
        return self._session_claims.get(sid, {}).get(ticket_id)

    def last_seen(self, ticket_id: str, user_id: str) -> datetime | None:
        """When the viewer last announced itself on the ticket."""
        slot = self._tickets.get(ticket_id, {}).get(user_id)
        return slot.last_seen_at if slot else None

    async def _release(self, ticket_id: str, user_id: str, sid: str | None) -> bool:
        viewers = self._tickets.get(ticket_id)
        slot = viewers.get(user_id) if viewers else None
        if viewers is None or slot is None:
            logger.debug(f"Leave of ticket {ticket_id} by {user_id} ignored: not viewing")
            return False

        if sid is not None:
            if sid not in slot.sids:
                return False
            slot.sids.discard(sid)
            self._drop_claim(sid, ticket_id)
            if slot.sids:
                return False
        else:
            for held_sid in slot.sids:
                self._drop_claim(held_sid, ticket_id)
            slot.sids.clear()

        del viewers[user_id]
        if not viewers:
            del self._tickets[ticket_id]
        logger.info(f"Viewer {user_id} left ticket {ticket_id}. Viewers: {len(viewers)}")
        await self._broadcaster.broadcast_left(ticket_id, user_id)
        return True

    def _drop_claim(self, sid: str, ticket_id: str) -> None:
        claims = self._session_claims.get(sid)
        if claims is None:
            return
        claims.pop(ticket_id, None)
        if not claims:
            del self._session_claims[sid]
