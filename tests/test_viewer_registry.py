"""Tests for ViewerRegistry."""

import asyncio
from unittest.mock import MagicMock, call

import pytest

from helpdesk_realtime.application.services import ViewerRegistry
from helpdesk_realtime.domain.models import UserType, ViewerEntry

ALICE = ViewerEntry(user_id="adm-1", user_name="Alice", user_type=UserType.ADMIN)
BOB = ViewerEntry(user_id="agt-1", user_name="Bob")
CAROL = ViewerEntry(user_id="agt-2", user_name="Carol", user_avatar="carol.png")


@pytest.fixture
def registry(viewer_broadcaster: MagicMock, clock) -> ViewerRegistry:
    return ViewerRegistry(viewer_broadcaster, clock=clock)


@pytest.mark.asyncio
async def test_first_view_returns_self_and_broadcasts_join_to_others(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given an empty ticket, when a user views it, then the ack lists them and others are told."""
    viewers = await registry.view("T-1", ALICE, "sid-a")

    assert viewers == [ALICE]
    viewer_broadcaster.broadcast_joined.assert_awaited_once_with("T-1", ALICE, skip_sid="sid-a")


@pytest.mark.asyncio
async def test_two_viewers_see_each_other(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given A viewing a ticket, when B views it, then B's ack lists both and A hears of B."""
    await registry.view("T-1", ALICE, "sid-a")

    viewers = await registry.view("T-1", BOB, "sid-b")

    assert viewers == [ALICE, BOB]
    assert viewer_broadcaster.broadcast_joined.await_args_list[-1] == call(
        "T-1", BOB, skip_sid="sid-b"
    )


@pytest.mark.asyncio
async def test_repeat_view_is_idempotent_and_refreshes_last_seen(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock, clock
) -> None:
    """Given a viewer, when the same user views again, then no new entry or join broadcast appears."""
    await registry.view("T-1", ALICE, "sid-a")
    later = clock.advance(10)

    viewers = await registry.view("T-1", ALICE, "sid-a")

    assert viewers == [ALICE]
    assert registry.last_seen("T-1", "adm-1") == later
    viewer_broadcaster.broadcast_joined.assert_awaited_once()


@pytest.mark.asyncio
async def test_leave_removes_viewer_and_broadcasts(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given two viewers, when one leaves, then the other remains and the leave is broadcast."""
    await registry.view("T-1", ALICE, "sid-a")
    await registry.view("T-1", BOB, "sid-b")

    removed = await registry.leave("T-1", "adm-1")

    assert removed is True
    assert registry.viewers("T-1") == [BOB]
    viewer_broadcaster.broadcast_left.assert_awaited_once_with("T-1", "adm-1")


@pytest.mark.asyncio
async def test_leave_of_absent_viewer_is_noop(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given a user not viewing, when they leave, then nothing happens."""
    assert await registry.leave("T-1", "adm-1") is False
    assert await registry.leave("T-1", "adm-1", "sid-a") is False

    viewer_broadcaster.broadcast_left.assert_not_called()


@pytest.mark.asyncio
async def test_disconnect_releases_every_ticket_of_the_session(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given a session viewing two tickets, when it disconnects, then it leaves both."""
    await registry.view("T-1", ALICE, "sid-a")
    await registry.view("T-2", ALICE, "sid-a")
    await registry.view("T-1", BOB, "sid-b")

    left = await registry.leave_session("sid-a")

    assert sorted(left) == ["T-1", "T-2"]
    assert registry.viewers("T-1") == [BOB]
    assert registry.viewers("T-2") == []
    assert viewer_broadcaster.broadcast_left.await_count == 2


@pytest.mark.asyncio
async def test_rejoin_from_new_session_survives_old_session_disconnect(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given a user re-joined from a new session, when the old session disconnects, then the entry stays."""
    await registry.view("T-1", ALICE, "sid-old")
    await registry.view("T-1", ALICE, "sid-new")

    left = await registry.leave_session("sid-old")

    assert left == []
    assert registry.viewers("T-1") == [ALICE]
    assert registry.user_for_session("sid-new", "T-1") == "adm-1"
    viewer_broadcaster.broadcast_left.assert_not_called()


@pytest.mark.asyncio
async def test_entry_goes_when_last_session_of_user_leaves(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given a user in two tabs, when both tabs leave, then the entry is removed once."""
    await registry.view("T-1", ALICE, "sid-1")
    await registry.view("T-1", ALICE, "sid-2")

    assert await registry.leave("T-1", "adm-1", "sid-1") is False
    assert registry.viewers("T-1") == [ALICE]

    assert await registry.leave("T-1", "adm-1", "sid-2") is True
    assert registry.viewers("T-1") == []
    viewer_broadcaster.broadcast_left.assert_awaited_once_with("T-1", "adm-1")


@pytest.mark.asyncio
async def test_view_updates_profile_of_existing_entry(registry: ViewerRegistry) -> None:
    """Given a viewer, when they view again with a new avatar, then the entry shows it."""
    await registry.view("T-2", CAROL, "sid-c")
    updated = CAROL.model_copy(update={"user_avatar": "new.png"})

    viewers = await registry.view("T-2", updated, "sid-c")

    assert viewers[0].user_avatar == "new.png"


@pytest.mark.asyncio
async def test_session_switching_user_releases_previous_entry(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given a session viewing as one user, when it views as another, then the first entry is released."""
    await registry.view("T-1", ALICE, "sid-a")

    viewers = await registry.view("T-1", BOB, "sid-a")

    assert viewers == [BOB]
    viewer_broadcaster.broadcast_left.assert_awaited_once_with("T-1", "adm-1")


@pytest.mark.asyncio
async def test_concurrent_views_keep_one_entry_per_user(
    registry: ViewerRegistry, viewer_broadcaster: MagicMock
) -> None:
    """Given many concurrent views by the same user, when applied, then exactly one join is broadcast."""
    await asyncio.gather(*(registry.view("T-1", ALICE, f"sid-{i}") for i in range(5)))

    assert registry.viewers("T-1") == [ALICE]
    viewer_broadcaster.broadcast_joined.assert_awaited_once()
