"""Roster domain model."""

from pydantic import BaseModel, ConfigDict, Field

from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket


class Roster(BaseModel):
    """Admins, agents and tickets the in-memory directory is seeded with."""

    model_config = ConfigDict(frozen=True)

    admins: list[DirectoryUser] = Field(default_factory=list)
    agents: list[DirectoryUser] = Field(default_factory=list)
    tickets: list[Ticket] = Field(default_factory=list)
