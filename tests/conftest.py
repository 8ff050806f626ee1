"""Shared fixtures for the helpdesk realtime tests."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket
from helpdesk_realtime.domain.models.roster import Roster
from helpdesk_realtime.domain.models.viewer import UserType

START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def roster() -> Roster:
    return Roster(
        admins=[
            DirectoryUser(
                id="adm-1",
                name="Alice Admin",
                type=UserType.ADMIN,
                email="alice@example.com",
                token="admin-token",
            )
        ],
        agents=[
            DirectoryUser(
                id="agt-1",
                name="Bob Builder",
                slug="bob",
                email="bob@example.com",
                token="bob-token",
            ),
            DirectoryUser(
                id="agt-2",
                name="Carol Jones",
                slug="carol",
                email="carol@example.com",
                avatar_url="https://example.com/carol.png",
                token="carol-token",
            ),
        ],
        tickets=[
            Ticket(ticket_id="T-1001", subject="Printer on fire", assignee_id="agt-1"),
            Ticket(ticket_id="T-1002", subject="Password reset"),
        ],
    )


@pytest.fixture
def presence_broadcaster() -> MagicMock:
    broadcaster = MagicMock()
    broadcaster.broadcast_presence = AsyncMock()
    return broadcaster


@pytest.fixture
def viewer_broadcaster() -> MagicMock:
    broadcaster = MagicMock()
    broadcaster.broadcast_joined = AsyncMock()
    broadcaster.broadcast_left = AsyncMock()
    return broadcaster


@pytest.fixture
def ticket_broadcaster() -> MagicMock:
    broadcaster = MagicMock()
    broadcaster.broadcast_assignment = AsyncMock()
    return broadcaster


class FakeTransport:
    """In-memory realtime transport driven by the test."""

    def __init__(self) -> None:
        self.connected = False
        self.sid: str | None = None
        self.handlers: dict[str, list] = {}
        self.connect_calls: list[dict | None] = []
        self.failures: list[Exception] = []
        self.fail_always: Exception | None = None
        self.emitted: list[tuple[str, object]] = []
        self.calls: list[tuple[str, object]] = []
        self.acks: dict[str, object] = {}
        self.call_error: Exception | None = None

    async def connect(self, auth: dict | None, timeout: float) -> None:
        self.connect_calls.append(auth)
        if self.fail_always is not None:
            raise self.fail_always
        if self.failures:
            raise self.failures.pop(0)
        self.connected = True
        self.sid = f"sid-{len(self.connect_calls)}"

    async def disconnect(self) -> None:
        self.connected = False
        self.sid = None
        await self.fire("disconnect", "client disconnect")

    async def emit(self, event: str, payload: object) -> None:
        self.emitted.append((event, payload))

    async def call(self, event: str, payload: object, timeout: float) -> object:
        self.calls.append((event, payload))
        if self.call_error is not None:
            raise self.call_error
        ack = self.acks.get(event)
        return ack(payload) if callable(ack) else ack

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def fire(self, event: str, *args: object) -> None:
        for handler in list(self.handlers.get(event, [])):
            result = handler(*args)
            if hasattr(result, "__await__"):
                await result

    async def drop(self, reason: str = "transport close") -> None:
        """Simulate an unexpected loss of the connection."""
        self.connected = False
        self.sid = None
        await self.fire("disconnect", reason)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
