"""Adapters layer - configuration, persistence, web server and client."""

from helpdesk_realtime.adapters.config import AppConfig
from helpdesk_realtime.adapters.persistence import (
    InMemoryDirectoryRepository,
    InMemoryTicketRepository,
    InMemoryWorklogRepository,
)

__all__ = [
    "AppConfig",
    "InMemoryDirectoryRepository",
    "InMemoryTicketRepository",
    "InMemoryWorklogRepository",
]
