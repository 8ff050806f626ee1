"""Socket.IO event handlers for presence and ticket viewers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import socketio
from pydantic import ValidationError

from helpdesk_realtime.adapters.web.client_info import (
    get_client_info_from_environ,
    get_token_from_environ,
)
from helpdesk_realtime.domain.errors import PresenceValidationError
from helpdesk_realtime.domain.models.events import (
    CONNECT,
    DISCONNECT,
    INVALID_PAYLOAD,
    PRESENCE_GET,
    PRESENCE_UPDATE,
    TICKET_LEAVE,
    TICKET_VIEW,
    PresenceGetPayload,
    PresenceUpdatePayload,
    TicketLeavePayload,
    TicketViewPayload,
    ticket_room,
)
from helpdesk_realtime.domain.models.viewer import UserType, ViewerEntry

if TYPE_CHECKING:
    from helpdesk_realtime.application.services.presence_store import PresenceStore
    from helpdesk_realtime.application.services.viewer_registry import ViewerRegistry
    from helpdesk_realtime.domain.ports import DirectoryRepository

logger = logging.getLogger(__name__)


def _rejected(code: str, message: str) -> dict[str, Any]:
    return {"success": False, "code": code, "message": message}


class RealtimeServer:
    """Binds the presence store and viewer registry to realtime sessions.

    Every session is authenticated on connect with the token from the handshake
    ``auth`` payload (or an ``Authorization: Bearer`` header). The user is kept
    in the session so later events cannot impersonate someone else.
    """

    def __init__(
        self,
        sio: socketio.AsyncServer,
        presence: PresenceStore,
        viewers: ViewerRegistry,
        directory: DirectoryRepository,
    ) -> None:
        """Initialize and register the event handlers.

        Args:
            sio: The Socket.IO server to register handlers on.
            presence: Authoritative presence of agents.
            viewers: Authoritative ticket viewers.
            directory: Resolves handshake tokens to users.
        """
        self._sio = sio
        self._presence = presence
        self._viewers = viewers
        self._directory = directory

        sio.on(CONNECT, self.on_connect)
        sio.on(DISCONNECT, self.on_disconnect)
        sio.on(TICKET_VIEW, self.on_ticket_view)
        sio.on(TICKET_LEAVE, self.on_ticket_leave)
        sio.on(PRESENCE_UPDATE, self.on_presence_update)
        sio.on(PRESENCE_GET, self.on_presence_get)

    async def on_connect(
        self, sid: str, environ: dict[str, Any], auth: dict[str, Any] | None = None
    ) -> None:
        """Authenticate a new session and mark agents online."""
        client = get_client_info_from_environ(environ)
        token = auth.get("token") if isinstance(auth, dict) else None
        token = token or get_token_from_environ(environ)
        user = await self._directory.find_by_token(token) if token else None
        if user is None:
            logger.warning(f"Rejected realtime connection {sid} from {client.ip}: invalid token")
            raise socketio.exceptions.ConnectionRefusedError("unauthorized")

        await self._sio.save_session(
            sid, {"user_id": user.id, "user_type": user.type.value, "user_name": user.name}
        )
        logger.info(
            f"Realtime session {sid} connected: {user.type} {user.id} "
            f"(ip={client.ip}, user_agent={client.user_agent})"
        )

        if user.type is UserType.AGENT:
            self._presence.register_agent(user.id, user.slug)
            await self._presence.attach_session(user.id, sid)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        """Drop the session's viewer entries and presence hold."""
        session = await self._sio.get_session(sid)
        left = await self._viewers.leave_session(sid)
        if session.get("user_type") == UserType.AGENT.value:
            await self._presence.detach_session(session["user_id"], sid)
        logger.info(
            f"Realtime session {sid} disconnected ({reason}); left tickets: {left or 'none'}"
        )

    async def on_ticket_view(self, sid: str, data: Any) -> dict[str, Any]:
        """Register the session's user as a viewer and ack with all viewers."""
        try:
            payload = TicketViewPayload.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Invalid {TICKET_VIEW} payload from {sid}: {e}")
            return _rejected(INVALID_PAYLOAD, "ticketId, userId and userName are required")

        session = await self._sio.get_session(sid)
        if payload.user_id != session.get("user_id"):
            logger.warning(
                f"Session {sid} of {session.get('user_id')} tried to view as {payload.user_id}"
            )
            return _rejected("forbidden", "userId does not match the authenticated user")

        # Identity comes from the authenticated session, only the avatar from the client
        viewer = ViewerEntry(
            user_id=session["user_id"],
            user_name=session["user_name"],
            user_avatar=payload.user_avatar,
            user_type=UserType(session["user_type"]),
        )
        await self._sio.enter_room(sid, ticket_room(payload.ticket_id))
        viewers = await self._viewers.view(payload.ticket_id, viewer, sid)
        return {"success": True, "viewers": [v.to_payload() for v in viewers]}

    async def on_ticket_leave(self, sid: str, data: Any) -> dict[str, Any]:
        """Remove the session's user from the ticket's viewers."""
        try:
            payload = TicketLeavePayload.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Invalid {TICKET_LEAVE} payload from {sid}: {e}")
            return _rejected(INVALID_PAYLOAD, "ticketId is required")

        await self._sio.leave_room(sid, ticket_room(payload.ticket_id))
        user_id = self._viewers.user_for_session(sid, payload.ticket_id)
        if user_id is not None:
            await self._viewers.leave(payload.ticket_id, user_id, sid)
        return {"success": True}

    async def on_presence_update(self, sid: str, data: Any) -> dict[str, Any]:
        """Let a connected agent set its own status."""
        session = await self._sio.get_session(sid)
        if session.get("user_type") != UserType.AGENT.value:
            return _rejected("forbidden", "Only agents have a presence status")

        try:
            payload = PresenceUpdatePayload.model_validate(data)
            record = await self._presence.set_status(session["user_id"], payload.presence_status)
        except (ValidationError, PresenceValidationError) as e:
            logger.debug(f"Invalid {PRESENCE_UPDATE} payload from {sid}: {e}")
            return _rejected(INVALID_PAYLOAD, "presenceStatus must be a valid non-offline status")
        return {"success": True, "presence": record.to_payload()}

    async def on_presence_get(self, sid: str, data: Any = None) -> dict[str, Any]:
        """Ack with the presence of the requested agents, or of everyone."""
        try:
            payload = PresenceGetPayload.model_validate(data or {})
        except ValidationError:
            return _rejected(INVALID_PAYLOAD, "agentIds must be a list of agent ids")
        records = self._presence.snapshot(payload.agent_ids)
        return {"success": True, "presence": [r.to_payload() for r in records]}
