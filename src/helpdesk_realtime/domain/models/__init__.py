"""Domain models for the helpdesk realtime layer."""

from helpdesk_realtime.domain.models.client_info import ClientInfo
from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket, normalize_assignee
from helpdesk_realtime.domain.models.mention import Mention, MentionCandidate, MentionTrigger
from helpdesk_realtime.domain.models.presence import PresenceRecord, PresenceStatus
from helpdesk_realtime.domain.models.roster import Roster
from helpdesk_realtime.domain.models.session import ConnectionState, Session
from helpdesk_realtime.domain.models.stored_session import StoredSession
from helpdesk_realtime.domain.models.viewer import UserType, ViewerEntry
from helpdesk_realtime.domain.models.worklog import WorklogEntry, WorklogSource, format_duration

__all__ = [
    "ClientInfo",
    "ConnectionState",
    "DirectoryUser",
    "Mention",
    "MentionCandidate",
    "MentionTrigger",
    "PresenceRecord",
    "PresenceStatus",
    "Roster",
    "Session",
    "StoredSession",
    "Ticket",
    "UserType",
    "ViewerEntry",
    "WorklogEntry",
    "WorklogSource",
    "format_duration",
    "normalize_assignee",
]
