"""Realtime event names and inbound payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from helpdesk_realtime.domain.models.presence import PresenceStatus
from helpdesk_realtime.domain.models.viewer import UserType

CONNECT = "connect"
DISCONNECT = "disconnect"
ERROR = "error"
CONNECT_FAILED = "connect_failed"

AGENT_PRESENCE_UPDATE = "agent:presence:update"
TICKET_VIEW = "ticket:view"
TICKET_VIEWER_JOINED = "ticket:viewer:joined"
TICKET_VIEWER_LEFT = "ticket:viewer:left"
TICKET_LEAVE = "ticket:leave"
PRESENCE_UPDATE = "presence:update"
PRESENCE_GET = "presence:get"
TICKET_ASSIGNMENT_CHANGED = "ticket:assignment:changed"

# Events raised by the connection manager itself, never sent over the wire.
LIFECYCLE_EVENTS = frozenset({CONNECT, DISCONNECT, ERROR, CONNECT_FAILED})

INVALID_PAYLOAD = "invalid_payload"


def ticket_room(ticket_id: str) -> str:
    """Name of the room that receives one ticket's events."""
    return f"ticket:{ticket_id}"


class _InboundPayload(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class TicketViewPayload(_InboundPayload):
    """Payload of ``ticket:view``."""

    ticket_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    user_avatar: str | None = None
    user_type: UserType = UserType.AGENT

    @field_validator("ticket_id", "user_id", mode="before")
    @classmethod
    def validate_identifier(cls, v: Any) -> str:
        """Accept numeric ids as sent by some clients."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class TicketLeavePayload(_InboundPayload):
    """Payload of ``ticket:leave``."""

    ticket_id: str = Field(min_length=1)

    @field_validator("ticket_id", mode="before")
    @classmethod
    def validate_ticket_id(cls, v: Any) -> str:
        """Accept numeric ids as sent by some clients."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class PresenceUpdatePayload(_InboundPayload):
    """Payload of ``presence:update``."""

    presence_status: PresenceStatus


class PresenceGetPayload(_InboundPayload):
    """Payload of ``presence:get``; no ids means every known agent."""

    agent_ids: list[str] | None = None
