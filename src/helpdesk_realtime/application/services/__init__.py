"""Application services (use cases) for the helpdesk realtime layer."""

from helpdesk_realtime.application.services.mention_resolver import (
    Composition,
    MentionComposer,
    MentionKey,
    build_roster,
    extract_trigger,
    find_by_mention,
    parse_mentions,
    resolve,
    resolve_mentions,
)
from helpdesk_realtime.application.services.presence_store import PresenceStore
from helpdesk_realtime.application.services.ticket_service import TicketService
from helpdesk_realtime.application.services.viewer_registry import ViewerRegistry
from helpdesk_realtime.application.services.worklog_service import WorklogService

__all__ = [
    "Composition",
    "MentionComposer",
    "MentionKey",
    "PresenceStore",
    "TicketService",
    "ViewerRegistry",
    "WorklogService",
    "build_roster",
    "extract_trigger",
    "find_by_mention",
    "parse_mentions",
    "resolve",
    "resolve_mentions",
]
