"""Tests for @-mention resolution and the mention composer."""

import pytest

from helpdesk_realtime.application.services import (
    MentionComposer,
    MentionKey,
    build_roster,
    extract_trigger,
    find_by_mention,
    parse_mentions,
    resolve,
    resolve_mentions,
)
from helpdesk_realtime.domain.models import MentionCandidate, MentionTrigger, Roster, UserType


@pytest.fixture
def candidates(roster: Roster) -> list[MentionCandidate]:
    return build_roster(roster.admins, roster.agents)


def test_build_roster_puts_admins_first(candidates: list[MentionCandidate]) -> None:
    """Given admins and agents, when building the roster, then admins come first."""
    assert [(c.id, c.type) for c in candidates] == [
        ("adm-1", UserType.ADMIN),
        ("agt-1", UserType.AGENT),
        ("agt-2", UserType.AGENT),
    ]
    assert candidates[2].avatar == "https://example.com/carol.png"


def test_resolve_matches_name_case_insensitively(candidates: list[MentionCandidate]) -> None:
    """Given a fragment in another case, when resolving, then names still match."""
    assert [c.id for c in resolve(candidates, "JON")] == ["agt-2"]


def test_resolve_matches_email(candidates: list[MentionCandidate]) -> None:
    """Given a fragment only found in an email, when resolving, then that user matches."""
    assert [c.id for c in resolve(candidates, "bob@exa")] == ["agt-1"]


def test_resolve_keeps_roster_order_and_empty_fragment_matches_all(
    candidates: list[MentionCandidate],
) -> None:
    """Given an empty fragment, when resolving, then everyone matches in roster order."""
    assert resolve(candidates, "") == candidates
    assert [c.id for c in resolve(candidates, "example.com")] == ["adm-1", "agt-1", "agt-2"]


def test_resolve_without_match_is_empty(candidates: list[MentionCandidate]) -> None:
    """Given a fragment nobody matches, when resolving, then the result is empty."""
    assert resolve(candidates, "zzz") == []


@pytest.mark.parametrize(
    ("text", "cursor", "expected"),
    [
        ("hello @car", 10, MentionTrigger(start_index=6, fragment="car")),
        ("@", 1, MentionTrigger(start_index=0, fragment="")),
        ("ping @bob.b_-1", 14, MentionTrigger(start_index=5, fragment="bob.b_-1")),
        ("a @x and @y", 4, MentionTrigger(start_index=2, fragment="x")),
        ("hello @carol ", 13, None),
        ("hello", 5, None),
        ("mail @bo!", 9, None),
    ],
)
def test_extract_trigger(text: str, cursor: int, expected: MentionTrigger | None) -> None:
    """Given text and a cursor, when extracting the trigger, then the last '@' fragment is found."""
    assert extract_trigger(text, cursor) == expected


def test_parse_mentions_deduplicates_case_insensitively() -> None:
    """Given repeated mentions in different case, when parsing, then the first occurrence wins."""
    mentions = parse_mentions("@Bob please ask @bob and @carol@example.com")

    assert [(m.mention_text, m.index) for m in mentions] == [
        ("Bob", 0),
        ("carol@example.com", 25),
    ]
    assert mentions[1].full_match == "@carol@example.com"


@pytest.mark.parametrize("text", [None, "", "no mentions here"])
def test_parse_mentions_without_mentions(text: str | None) -> None:
    """Given text without mentions, when parsing, then nothing is found."""
    assert parse_mentions(text) == []


def test_find_by_mention_prefers_exact_email(candidates: list[MentionCandidate]) -> None:
    """Given an email mention, when finding the user, then only an exact email matches."""
    assert find_by_mention(candidates, "CAROL@example.com").id == "agt-2"
    assert find_by_mention(candidates, "carol@example") is None


def test_resolve_mentions_maps_text_to_users(candidates: list[MentionCandidate]) -> None:
    """Given a note with mentions, when resolving, then each user appears once."""
    found = resolve_mentions(candidates, "@alice look, @Bob and @bob.builder")

    assert [c.id for c in found] == ["adm-1", "agt-1"]


def test_composer_opens_on_trigger_and_commits_with_enter(
    candidates: list[MentionCandidate],
) -> None:
    """Given a typed fragment, when pressing Enter, then '@Name ' replaces it and the cursor follows."""
    composer = MentionComposer(candidates)

    shown = composer.update("Hi @car", 7)
    result = composer.handle_key(MentionKey.ENTER)

    assert [c.id for c in shown] == ["agt-2"]
    assert result is not None
    assert result.text == "Hi @Carol Jones "
    assert result.cursor == len("Hi @Carol Jones ")
    assert not composer.is_open


def test_composer_replaces_fragment_in_the_middle_of_text(
    candidates: list[MentionCandidate],
) -> None:
    """Given a fragment before existing text, when committing with Tab, then the rest is preserved."""
    composer = MentionComposer(candidates)
    composer.update("ask @bo today", 7)

    result = composer.handle_key(MentionKey.TAB)

    assert result is not None
    assert result.text == "ask @Bob Builder  today"
    assert result.cursor == len("ask @Bob Builder ")


def test_composer_arrow_keys_clamp(candidates: list[MentionCandidate]) -> None:
    """Given three candidates, when pressing arrows past the ends, then the selection clamps."""
    composer = MentionComposer(candidates)
    composer.update("@", 1)

    composer.handle_key(MentionKey.UP)
    assert composer.selected_index == 0

    for _ in range(5):
        composer.handle_key(MentionKey.DOWN)
    assert composer.selected_index == 2
    assert composer.selected.id == "agt-2"

    composer.handle_key(MentionKey.UP)
    assert composer.selected.id == "agt-1"


def test_composer_escape_dismisses_without_inserting(candidates: list[MentionCandidate]) -> None:
    """Given an open list, when pressing Escape, then it closes and nothing is inserted."""
    composer = MentionComposer(candidates)
    composer.update("@a", 2)

    assert composer.handle_key(MentionKey.ESCAPE) is None
    assert not composer.is_open
    assert composer.handle_key(MentionKey.ENTER) is None


def test_composer_closed_without_matches(candidates: list[MentionCandidate]) -> None:
    """Given a fragment without matches, when updating, then the list stays closed."""
    composer = MentionComposer(candidates)

    assert composer.update("@zzz", 4) == []
    assert not composer.is_open
    assert composer.selected is None


def test_composer_set_roster_refreshes_candidates() -> None:
    """Given an empty roster, when the roster arrives, then the open fragment is resolved again."""
    composer = MentionComposer([])
    composer.update("@da", 3)
    assert not composer.is_open

    composer.set_roster([MentionCandidate(id="agt-3", name="Dave", type=UserType.AGENT)])

    assert [c.id for c in composer.candidates] == ["agt-3"]
