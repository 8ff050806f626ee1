"""Mention domain models."""

from dataclasses import dataclass

from helpdesk_realtime.domain.models.viewer import UserType


@dataclass(frozen=True)
class MentionCandidate:
    """A roster entry that can be mentioned from a message or note composer."""

    id: str
    name: str
    type: UserType
    email: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class MentionTrigger:
    """An ``@fragment`` currently being typed in front of the cursor."""

    start_index: int  # Index of the "@" character
    fragment: str  # Text typed after "@", may be empty


@dataclass(frozen=True)
class Mention:
    """A mention found in composed text."""

    full_match: str
    mention_text: str
    index: int
