"""Ports (interfaces) for the ports-and-adapters architecture."""

from helpdesk_realtime.domain.ports.directory_repository import DirectoryRepository
from helpdesk_realtime.domain.ports.ticket_repository import TicketRepository
from helpdesk_realtime.domain.ports.worklog_repository import WorklogRepository

__all__ = [
    "DirectoryRepository",
    "TicketRepository",
    "WorklogRepository",
]
