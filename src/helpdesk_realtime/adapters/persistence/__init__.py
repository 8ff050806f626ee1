"""In-memory persistence adapters."""

from helpdesk_realtime.adapters.persistence.in_memory_directory import (
    InMemoryDirectoryRepository,
    InMemoryTicketRepository,
)
from helpdesk_realtime.adapters.persistence.in_memory_worklogs import InMemoryWorklogRepository

__all__ = [
    "InMemoryDirectoryRepository",
    "InMemoryTicketRepository",
    "InMemoryWorklogRepository",
]
