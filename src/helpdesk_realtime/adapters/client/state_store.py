"""Persisted login state of the command line client."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from helpdesk_realtime.domain.models.stored_session import StoredSession

logger = logging.getLogger(__name__)


class ClientStateStore:
    """Keeps the token and profile in a JSON file between runs."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredSession | None:
        """Read the stored login; a missing or corrupt file means logged out."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredSession.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable client state at {self._path}: {e}")
            return None

    def save(self, session: StoredSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        self._path.chmod(0o600)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
