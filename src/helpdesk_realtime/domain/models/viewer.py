"""Ticket viewer domain model."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserType(StrEnum):
    """Kind of dashboard operator."""

    ADMIN = "admin"
    AGENT = "agent"


class ViewerEntry(BaseModel):
    """A user currently registered as viewing a ticket page."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    user_id: str
    user_name: str
    user_avatar: str | None = None
    user_type: UserType = UserType.AGENT

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)
