"""Roster configuration loader."""

from typing import Any

from helpdesk_realtime.adapters.config.app_config import AppConfig
from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket
from helpdesk_realtime.domain.models.roster import Roster
from helpdesk_realtime.domain.models.viewer import UserType


class RosterConfigurationLoader:
    """Loads the roster from app config."""

    @staticmethod
    def load_user_from_data(user_data: dict[str, Any], user_type: UserType) -> DirectoryUser | None:
        """Load a single admin or agent from a data dict."""
        user_id = user_data.get("id")
        if user_id is None or str(user_id).strip() == "":
            return None
        user_id = str(user_id)

        name = user_data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = user_id

        slug = user_data.get("slug")
        email = user_data.get("email")
        avatar_url = user_data.get("avatar_url")
        token = user_data.get("token")

        return DirectoryUser(
            id=user_id,
            name=name,
            type=user_type,
            slug=slug if isinstance(slug, str) and slug else None,
            email=email if isinstance(email, str) and email else None,
            avatar_url=avatar_url if isinstance(avatar_url, str) and avatar_url else None,
            token=str(token) if token else None,
        )

    @staticmethod
    def load_ticket_from_data(ticket_data: dict[str, Any]) -> Ticket | None:
        """Load a single ticket from a data dict."""
        ticket_id = ticket_data.get("id")
        if ticket_id is None or str(ticket_id).strip() == "":
            return None
        subject = ticket_data.get("subject", "")
        return Ticket(
            ticket_id=str(ticket_id),
            subject=subject if isinstance(subject, str) else str(subject),
            assignee_id=ticket_data.get("assignee_id"),
        )

    @staticmethod
    def load(config: AppConfig) -> Roster:
        """Load the roster from app config.

        Raises ValueError if user ids, agent slugs, tokens or ticket ids are not unique.
        """
        data = config.get_roster_config()

        admins = [
            user
            for entry in data["admins"]
            if (user := RosterConfigurationLoader.load_user_from_data(entry, UserType.ADMIN))
        ]
        agents = [
            user
            for entry in data["agents"]
            if (user := RosterConfigurationLoader.load_user_from_data(entry, UserType.AGENT))
        ]
        tickets = [
            ticket
            for entry in data["tickets"]
            if (ticket := RosterConfigurationLoader.load_ticket_from_data(entry))
        ]

        users = admins + agents
        _ensure_unique("user ids", [u.id for u in users])
        _ensure_unique("agent slugs", [u.slug for u in agents if u.slug])
        _ensure_unique("tokens", [u.token for u in users if u.token])
        _ensure_unique("ticket ids", [t.ticket_id for t in tickets])

        agent_ids = {a.id for a in agents}
        for ticket in tickets:
            if ticket.assignee_id is not None and ticket.assignee_id not in agent_ids:
                raise ValueError(
                    f"Ticket {ticket.ticket_id} is assigned to unknown agent {ticket.assignee_id}"
                )

        return Roster(admins=admins, agents=agents, tickets=tickets)


def _ensure_unique(what: str, values: list[str]) -> None:
    if len(values) != len(set(values)):
        duplicates = sorted({v for v in values if values.count(v) > 1})
        raise ValueError(f"Roster {what} must be unique. Duplicates found: {duplicates}")
