"""Directory repository port."""

from typing import Protocol

from helpdesk_realtime.domain.models.directory import DirectoryUser


class DirectoryRepository(Protocol):
    """Port for looking up admins and agents."""

    async def get_user(self, user_id: str) -> DirectoryUser | None:
        """Find an admin or agent by id."""
        ...

    async def get_agent(self, agent_id: str) -> DirectoryUser | None:
        """Find an agent by id or slug."""
        ...

    async def find_by_token(self, token: str) -> DirectoryUser | None:
        """Resolve an authentication token to its user."""
        ...

    async def list_agents(self) -> list[DirectoryUser]:
        """List every agent in roster order."""
        ...

    async def list_admins(self) -> list[DirectoryUser]:
        """List every admin in roster order."""
        ...
