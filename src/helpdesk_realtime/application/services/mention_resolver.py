"""@-mention autocomplete and parsing over an in-memory roster."""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from helpdesk_realtime.domain.models.directory import DirectoryUser
from helpdesk_realtime.domain.models.mention import Mention, MentionCandidate, MentionTrigger
from helpdesk_realtime.domain.models.viewer import UserType

_FRAGMENT_PATTERN = re.compile(r"^[a-zA-Z0-9._-]*$")
# @username, @user.name, @user_name or @email@domain.tld
_MENTION_PATTERN = re.compile(r"@([a-zA-Z0-9._-]+(?:@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})?)")


def build_roster(
    admins: Iterable[DirectoryUser], agents: Iterable[DirectoryUser]
) -> list[MentionCandidate]:
    """Build the mention roster: admins first, then agents."""
    return [
        MentionCandidate(
            id=user.id,
            name=user.name,
            type=user_type,
            email=user.email,
            avatar=user.avatar_url,
        )
        for users, user_type in ((admins, UserType.ADMIN), (agents, UserType.AGENT))
        for user in users
    ]


def resolve(roster: list[MentionCandidate], fragment: str) -> list[MentionCandidate]:
    """Return the candidates whose name or email contains ``fragment``.

    Matching is case-insensitive and keeps roster order. An empty fragment
    matches everyone.
    """
    query = fragment.lower()
    return [
        candidate
        for candidate in roster
        if query in candidate.name.lower()
        or (candidate.email is not None and query in candidate.email.lower())
    ]


def extract_trigger(text: str, cursor: int) -> MentionTrigger | None:
    """Find the mention being typed in front of the cursor.

    The trigger starts at the last ``@`` before the cursor. If anything other
    than ``[a-zA-Z0-9._-]`` was typed since (a space, for example), the mention
    is considered complete and there is no trigger.
    """
    before_cursor = text[: max(0, cursor)]
    start_index = before_cursor.rfind("@")
    if start_index == -1:
        return None
    fragment = before_cursor[start_index + 1 :]
    if not _FRAGMENT_PATTERN.match(fragment):
        return None
    return MentionTrigger(start_index=start_index, fragment=fragment)


def parse_mentions(text: str | None) -> list[Mention]:
    """Extract the unique mentions of a text, first occurrence wins.

    Duplicates are detected case-insensitively.
    """
    if not text:
        return []

    mentions: list[Mention] = []
    seen: set[str] = set()
    for match in _MENTION_PATTERN.finditer(text):
        key = match.group(1).lower()
        if key in seen:
            continue
        seen.add(key)
        mentions.append(
            Mention(full_match=match.group(0), mention_text=match.group(1), index=match.start())
        )
    return mentions


def find_by_mention(roster: list[MentionCandidate], mention_text: str) -> MentionCandidate | None:
    """Map the text of a parsed mention to a roster entry.

    Email-like text must match an email exactly (agents before admins); other
    text matches a name by substring, agents before admins.
    """
    search = mention_text.strip().lower()
    if not search:
        return None

    ordered = [c for c in roster if c.type is UserType.AGENT] + [
        c for c in roster if c.type is not UserType.AGENT
    ]
    if "@" in search:
        return next((c for c in ordered if c.email and c.email.lower() == search), None)
    return next((c for c in ordered if search in c.name.lower()), None)


def resolve_mentions(roster: list[MentionCandidate], text: str | None) -> list[MentionCandidate]:
    """Roster entries mentioned in a text, for notification fan-out."""
    found: list[MentionCandidate] = []
    for mention in parse_mentions(text):
        candidate = find_by_mention(roster, mention.mention_text)
        if candidate is not None and candidate not in found:
            found.append(candidate)
    return found


class MentionKey(StrEnum):
    """Keys the autocomplete list reacts to."""

    DOWN = "ArrowDown"
    UP = "ArrowUp"
    ENTER = "Enter"
    TAB = "Tab"
    ESCAPE = "Escape"


@dataclass(frozen=True)
class Composition:
    """Text and cursor position after a mention was inserted."""

    text: str
    cursor: int


class MentionComposer:
    """Keyboard-driven mention autocomplete for one text input."""

    def __init__(self, roster: list[MentionCandidate]) -> None:
        self._roster = roster
        self._text = ""
        self._cursor = 0
        self._trigger: MentionTrigger | None = None
        self._candidates: list[MentionCandidate] = []
        self.selected_index = 0

    @property
    def is_open(self) -> bool:
        """Whether the candidate list is shown."""
        return self._trigger is not None and bool(self._candidates)

    @property
    def candidates(self) -> list[MentionCandidate]:
        return list(self._candidates) if self.is_open else []

    @property
    def selected(self) -> MentionCandidate | None:
        if not self.is_open:
            return None
        return self._candidates[self.selected_index]

    def set_roster(self, roster: list[MentionCandidate]) -> None:
        self._roster = roster
        self.update(self._text, self._cursor)

    def update(self, text: str, cursor: int) -> list[MentionCandidate]:
        """React to an edit of the input; returns the candidates now shown."""
        self._text = text
        self._cursor = cursor
        self._trigger = extract_trigger(text, cursor)
        self._candidates = resolve(self._roster, self._trigger.fragment) if self._trigger else []
        self.selected_index = 0
        return self.candidates

    def handle_key(self, key: MentionKey | str) -> Composition | None:
        """Apply a key press while the list is open.

        Returns:
            The new text and cursor when a candidate was committed, otherwise None.
        """
        if not self.is_open:
            return None

        if key == MentionKey.DOWN:
            self.selected_index = min(self.selected_index + 1, len(self._candidates) - 1)
        elif key == MentionKey.UP:
            self.selected_index = max(self.selected_index - 1, 0)
        elif key in (MentionKey.ENTER, MentionKey.TAB):
            return self.commit()
        elif key == MentionKey.ESCAPE:
            self.dismiss()
        return None

    def commit(self, candidate: MentionCandidate | None = None) -> Composition | None:
        """Insert ``@Name `` in place of the typed fragment and close the list."""
        chosen = candidate or self.selected
        if chosen is None or self._trigger is None:
            return None

        mention_text = f"@{chosen.name} "
        start = self._trigger.start_index
        text = self._text[:start] + mention_text + self._text[self._cursor :]
        cursor = start + len(mention_text)
        self._text, self._cursor = text, cursor
        self.dismiss()
        return Composition(text=text, cursor=cursor)

    def dismiss(self) -> None:
        """Close the list without inserting anything."""
        self._trigger = None
        self._candidates = []
        self.selected_index = 0
