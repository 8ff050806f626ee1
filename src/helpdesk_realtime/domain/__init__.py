"""Domain layer - core models, errors and ports."""

from helpdesk_realtime.domain.errors import (
    ApiError,
    NotFoundError,
    PresenceValidationError,
    WorklogConflictError,
    WorklogValidationError,
)
from helpdesk_realtime.domain.models import (
    PresenceRecord,
    PresenceStatus,
    Ticket,
    ViewerEntry,
    WorklogEntry,
)
from helpdesk_realtime.domain.ports import (
    DirectoryRepository,
    TicketRepository,
    WorklogRepository,
)

__all__ = [
    "ApiError",
    "DirectoryRepository",
    "NotFoundError",
    "PresenceRecord",
    "PresenceStatus",
    "PresenceValidationError",
    "Ticket",
    "TicketRepository",
    "ViewerEntry",
    "WorklogConflictError",
    "WorklogEntry",
    "WorklogRepository",
    "WorklogValidationError",
]
