"""Worklog domain model."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel


class WorklogSource(StrEnum):
    """How a worklog entry was recorded."""

    AUTO = "auto"
    MANUAL = "manual"


def format_duration(seconds: int | None) -> str:
    """Format a duration as ``1h 2m 3s``, ``2m 3s`` or ``3s``."""
    if not seconds or seconds < 0:
        return "0s"

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class WorklogEntry(BaseModel):
    """A tracked work interval of an agent on a ticket.

    At most one entry per (agent, ticket) pair has ``ended_at`` unset.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    agent_id: str
    ticket_id: str
    started_at: datetime
    ended_at: datetime | None = None
    source: WorklogSource = WorklogSource.AUTO
    description: str | None = None
    stop_reason: str | None = None

    @property
    def is_active(self) -> bool:
        """Whether the interval is still open."""
        return self.ended_at is None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_seconds(self) -> int | None:
        """Length of the closed interval in whole seconds."""
        if self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_formatted(self) -> str:
        """Human readable duration, ``Active`` while the interval is open."""
        if self.ended_at is None:
            return "Active"
        return format_duration(self.duration_seconds)

    def close(self, ended_at: datetime, stop_reason: str | None = None) -> "WorklogEntry":
        """Return a copy of this entry closed at ``ended_at``."""
        return self.model_copy(update={"ended_at": ended_at, "stop_reason": stop_reason})

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)
