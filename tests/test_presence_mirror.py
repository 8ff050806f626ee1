"""Tests for the client-side presence mirror."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from helpdesk_realtime.adapters.client import (
    ConnectionManager,
    ConnectionSettings,
    PresenceMirror,
)
from helpdesk_realtime.domain.errors import ApiError
from helpdesk_realtime.domain.models import PresenceRecord, PresenceStatus
from helpdesk_realtime.domain.models.events import AGENT_PRESENCE_UPDATE

EARLY = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
LATE = EARLY + timedelta(minutes=5)


@pytest.fixture
def connection(transport) -> ConnectionManager:
    return ConnectionManager(
        transport, ConnectionSettings(url="http://helpdesk.test"), sleep=AsyncMock()
    )


@pytest.fixture
def api() -> MagicMock:
    api = MagicMock()
    api.fetch_presence = AsyncMock(
        return_value=[
            PresenceRecord(
                agent_id="agt-1",
                agent_slug="bob",
                presence_status=PresenceStatus.ONLINE,
                last_seen_at=EARLY,
            ),
            PresenceRecord(agent_id="agt-2", agent_slug="carol"),
        ]
    )
    return api


@pytest.mark.asyncio
async def test_start_seeds_from_rest(api: MagicMock, connection: ConnectionManager) -> None:
    """Given a REST snapshot, when starting, then every agent is mirrored."""
    mirror = PresenceMirror(api, connection)

    await mirror.start()

    assert mirror.seeded
    assert mirror.status("agt-1") is PresenceStatus.ONLINE
    assert mirror.status("carol") is PresenceStatus.OFFLINE
    assert len(mirror.snapshot()) == 2


@pytest.mark.asyncio
async def test_delta_applies_by_agent_id(
    api: MagicMock, connection: ConnectionManager, transport
) -> None:
    """Given a seeded mirror, when a delta arrives, then the agent's record is replaced and listeners hear it."""
    changes: list[PresenceRecord] = []
    mirror = PresenceMirror(api, connection, on_change=changes.append)
    await mirror.start()
    await connection.connect()

    await transport.fire(
        AGENT_PRESENCE_UPDATE,
        {
            "agentId": "agt-1",
            "agentSlug": "bob",
            "presenceStatus": "in_meeting",
            "lastSeenAt": LATE.isoformat(),
        },
    )

    assert mirror.status("agt-1") is PresenceStatus.IN_MEETING
    assert mirror.get("bob").last_seen_at == LATE
    assert [c.presence_status for c in changes] == [PresenceStatus.IN_MEETING]


@pytest.mark.asyncio
async def test_delta_without_slug_keeps_known_alias(
    api: MagicMock, connection: ConnectionManager
) -> None:
    """Given a delta lacking the slug, when applied, then the agent is still found by slug."""
    mirror = PresenceMirror(api, connection)
    await mirror.start()

    mirror.apply(PresenceRecord(agent_id="agt-2", presence_status=PresenceStatus.AWAY))

    assert mirror.get("carol").presence_status is PresenceStatus.AWAY
    assert mirror.get("agt-2").agent_slug == "carol"


@pytest.mark.asyncio
async def test_delta_keyed_by_slug_resolves_to_canonical_id(
    api: MagicMock, connection: ConnectionManager
) -> None:
    """Given a delta that carries the slug as id, when applied, then the canonical record is updated."""
    mirror = PresenceMirror(api, connection)
    await mirror.start()

    record = mirror.apply(
        PresenceRecord(agent_id="bob", agent_slug="bob", presence_status=PresenceStatus.DND)
    )

    assert record.agent_id == "agt-1"
    assert mirror.status("agt-1") is PresenceStatus.DND
    assert len(mirror.snapshot()) == 2


@pytest.mark.asyncio
async def test_delta_during_seed_is_not_overwritten(
    api: MagicMock, connection: ConnectionManager
) -> None:
    """Given a newer delta arriving while the snapshot loads, when seeding, then the delta wins."""
    mirror = PresenceMirror(api, connection)

    async def fetch_with_concurrent_delta() -> list[PresenceRecord]:
        mirror.apply(
            PresenceRecord(
                agent_id="agt-1",
                agent_slug="bob",
                presence_status=PresenceStatus.BUSY,
                last_seen_at=LATE,
            )
        )
        return [
            PresenceRecord(
                agent_id="agt-1",
                agent_slug="bob",
                presence_status=PresenceStatus.ONLINE,
                last_seen_at=EARLY,
            )
        ]

    api.fetch_presence = AsyncMock(side_effect=fetch_with_concurrent_delta)

    await mirror.start()

    assert mirror.status("agt-1") is PresenceStatus.BUSY


@pytest.mark.asyncio
async def test_failed_seed_keeps_live_updates(
    api: MagicMock, connection: ConnectionManager, transport
) -> None:
    """Given REST failing, when starting, then the mirror is unseeded but applies deltas."""
    api.fetch_presence = AsyncMock(side_effect=ApiError("Could not reach the helpdesk server"))
    mirror = PresenceMirror(api, connection)

    await mirror.start()
    await connection.connect()
    await transport.fire(AGENT_PRESENCE_UPDATE, {"agentId": "agt-9", "presenceStatus": "online"})

    assert not mirror.seeded
    assert mirror.status("agt-9") is PresenceStatus.ONLINE


@pytest.mark.asyncio
async def test_malformed_delta_is_ignored(
    api: MagicMock, connection: ConnectionManager, transport
) -> None:
    """Given a malformed delta, when it arrives, then the mirror is unchanged."""
    mirror = PresenceMirror(api, connection)
    await mirror.start()
    await connection.connect()

    await transport.fire(AGENT_PRESENCE_UPDATE, {"agentId": "agt-1", "presenceStatus": "asleep"})

    assert mirror.status("agt-1") is PresenceStatus.ONLINE


@pytest.mark.asyncio
async def test_stop_unsubscribes(api: MagicMock, connection: ConnectionManager, transport) -> None:
    """Given a stopped mirror, when a delta arrives, then it is not applied."""
    mirror = PresenceMirror(api, connection)
    await mirror.start()
    await connection.connect()
    mirror.stop()

    await transport.fire(AGENT_PRESENCE_UPDATE, {"agentId": "agt-1", "presenceStatus": "away"})

    assert mirror.status("agt-1") is PresenceStatus.ONLINE
