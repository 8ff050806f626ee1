"""Directory domain models: operators and tickets known to the helpdesk."""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from helpdesk_realtime.domain.models.viewer import UserType, ViewerEntry

UNASSIGNED_MARKERS = frozenset({"", "unassigned", "none", "null"})


def normalize_assignee(value: Any) -> str | None:
    """Map every representation of "no assignee" to ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in UNASSIGNED_MARKERS:
        return None
    return text


class DirectoryUser(BaseModel):
    """An admin or agent account."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: UserType = UserType.AGENT
    slug: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    token: str | None = None

    def as_viewer(self) -> ViewerEntry:
        """Describe this user as a ticket viewer."""
        return ViewerEntry(
            user_id=self.id,
            user_name=self.name,
            user_avatar=self.avatar_url,
            user_type=self.type,
        )

    def public_profile(self) -> dict[str, Any]:
        """Profile without credentials."""
        return self.model_dump(mode="json", exclude={"token"})


class Ticket(BaseModel):
    """The slice of a support ticket this layer cares about."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    ticket_id: str
    subject: str = ""
    assignee_id: str | None = None

    @field_validator("assignee_id", mode="before")
    @classmethod
    def validate_assignee_id(cls, v: Any) -> str | None:
        """Canonicalize the unassigned state to ``None``."""
        return normalize_assignee(v)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)
