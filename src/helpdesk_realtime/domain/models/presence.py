"""Agent presence domain model."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PresenceStatus(StrEnum):
    """Availability status of an agent."""

    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    IN_MEETING = "in_meeting"
    DND = "dnd"
    ON_LEAVE = "on_leave"
    OFFLINE = "offline"

    @classmethod
    def values(cls) -> list[str]:
        """Return all status values in declaration order."""
        return [status.value for status in cls]


class PresenceRecord(BaseModel):
    """Current presence of one agent.

    Exactly one status is current at any instant. ``offline`` is only ever
    reached when the agent's last session disconnects.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    agent_id: str
    agent_slug: str | None = None
    presence_status: PresenceStatus = PresenceStatus.OFFLINE
    last_seen_at: datetime | None = None

    @property
    def is_offline(self) -> bool:
        """Whether the agent is currently offline."""
        return self.presence_status is PresenceStatus.OFFLINE

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the ``agent:presence:update`` wire shape."""
        return self.model_dump(mode="json", by_alias=True)
