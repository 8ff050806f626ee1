"""Domain errors."""


class PresenceValidationError(ValueError):
    """Raised when a presence status change is not allowed."""


class WorklogValidationError(ValueError):
    """Raised when a worklog request is malformed or violates a business rule."""


class WorklogConflictError(WorklogValidationError):
    """Raised when a change would leave two open entries for one agent and ticket."""


class NotFoundError(LookupError):
    """Raised when a referenced agent, ticket or worklog does not exist."""


class ApiError(Exception):
    """Raised by REST clients when the server answers with a failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
