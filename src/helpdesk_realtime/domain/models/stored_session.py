"""Client-side persisted login state."""

from pydantic import BaseModel, ConfigDict

from helpdesk_realtime.domain.models.viewer import UserType, ViewerEntry


class StoredSession(BaseModel):
    """Authentication token and minimal profile kept across client runs."""

    model_config = ConfigDict(frozen=True)

    token: str
    user_id: str
    user_name: str
    user_type: UserType = UserType.AGENT
    avatar_url: str | None = None

    def as_viewer(self) -> ViewerEntry:
        """Describe the logged-in user as a ticket viewer."""
        return ViewerEntry(
            user_id=self.user_id,
            user_name=self.user_name,
            user_avatar=self.avatar_url,
            user_type=self.user_type,
        )
