"""Tests for the REST routes served next to the realtime endpoint."""

import itertools
import json
from unittest.mock import MagicMock

import pytest
from starlette.testclient import TestClient

from helpdesk_realtime.adapters.config import AppConfig
from helpdesk_realtime.adapters.persistence import (
    InMemoryDirectoryRepository,
    InMemoryTicketRepository,
    InMemoryWorklogRepository,
)
from helpdesk_realtime.adapters.web import RealtimeWebAdapter, create_socketio_server
from helpdesk_realtime.application.services import (
    PresenceStore,
    TicketService,
    ViewerRegistry,
    WorklogService,
)
from helpdesk_realtime.domain.models import Roster

BOB = {"Authorization": "Bearer bob-token"}
CAROL = {"Authorization": "Bearer carol-token"}
ADMIN = {"Authorization": "Bearer admin-token"}


@pytest.fixture
def client(
    roster: Roster,
    clock,
    presence_broadcaster: MagicMock,
    viewer_broadcaster: MagicMock,
    ticket_broadcaster: MagicMock,
) -> TestClient:
    config = AppConfig(_env_file=None)
    directory = InMemoryDirectoryRepository(roster)
    ticket_repo = InMemoryTicketRepository(roster)
    ids = (f"w{i}" for i in itertools.count(1))
    adapter = RealtimeWebAdapter(
        config,
        create_socketio_server(config),
        presence=PresenceStore(presence_broadcaster, clock=clock),
        viewers=ViewerRegistry(viewer_broadcaster, clock=clock),
        worklogs=WorklogService(
            InMemoryWorklogRepository(),
            directory,
            ticket_repo,
            clock=clock,
            id_factory=lambda: next(ids),
        ),
        tickets=TicketService(ticket_repo, directory, ticket_broadcaster),
        directory=directory,
    )
    return TestClient(adapter.create_app())


def test_adapter_requires_app_config() -> None:
    """Given a plain dict as config, when building the adapter, then it is rejected."""
    with pytest.raises(TypeError):
        RealtimeWebAdapter({}, MagicMock(), None, None, None, None, None)  # type: ignore[arg-type]


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.text == "Ok"


@pytest.mark.parametrize(
    "path", ["/api/me", "/api/roster", "/api/tickets/T-1001", "/api/agents/presence"]
)
def test_requires_authentication(client: TestClient, path: str) -> None:
    """Given no or an unknown token, when calling a REST route, then it answers 401."""
    assert client.get(path).status_code == 401
    assert client.get(path, headers={"Authorization": "Bearer forged"}).status_code == 401


def test_me_returns_profile_without_token(client: TestClient) -> None:
    """Given a valid token, when asking who I am, then the profile is returned without credentials."""
    response = client.get("/api/me", headers=BOB)

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["id"] == "agt-1"
    assert user["type"] == "agent"
    assert user["slug"] == "bob"
    assert "token" not in user


def test_roster_lists_admins_and_agents(client: TestClient) -> None:
    """Given the roster, when listed, then admins and agents are returned without tokens."""
    data = client.get("/api/roster", headers=ADMIN).json()

    assert [a["id"] for a in data["admins"]] == ["adm-1"]
    assert [a["id"] for a in data["agents"]] == ["agt-1", "agt-2"]
    assert all("token" not in u for u in data["admins"] + data["agents"])


def test_get_ticket(client: TestClient) -> None:
    """Given known and unknown tickets, when fetched, then 200 and 404 are returned."""
    ticket = client.get("/api/tickets/T-1001", headers=BOB).json()["ticket"]

    assert ticket == {"ticketId": "T-1001", "subject": "Printer on fire", "assigneeId": "agt-1"}
    assert client.get("/api/tickets/T-9", headers=BOB).status_code == 404


def test_assign_ticket_broadcasts_change(
    client: TestClient, ticket_broadcaster: MagicMock
) -> None:
    """Given an assigned ticket, when reassigned and then unassigned, then each change is broadcast."""
    response = client.patch(
        "/api/tickets/T-1001/assignee", headers=ADMIN, json={"assigneeId": "agt-2"}
    )
    assert response.status_code == 200
    assert response.json()["ticket"]["assigneeId"] == "agt-2"

    response = client.patch(
        "/api/tickets/T-1001/assignee", headers=ADMIN, json={"assigneeId": "unassigned"}
    )
    assert response.json()["ticket"]["assigneeId"] is None
    assert ticket_broadcaster.broadcast_assignment.await_count == 2


def test_assign_ticket_errors(client: TestClient) -> None:
    """Given bad input, when assigning, then 400 or 404 is returned."""
    path = "/api/tickets/T-1001/assignee"

    assert client.patch(path, headers=ADMIN, json={}).status_code == 400
    assert client.patch(path, headers=ADMIN, content=b"[1, 2]").status_code == 400
    assert client.patch(path, headers=ADMIN, json={"assigneeId": "agt-9"}).status_code == 404
    assert (
        client.patch("/api/tickets/T-9/assignee", headers=ADMIN, json={"assigneeId": None})
    ).status_code == 404


def test_presence_list_includes_agents_never_seen(client: TestClient) -> None:
    """Given no connected agent, when listing presence, then every agent is offline."""
    data = client.get("/api/agents/presence", headers=ADMIN).json()

    assert data["total"] == 2
    assert {(p["agentId"], p["agentSlug"], p["presenceStatus"]) for p in data["presence"]} == {
        ("agt-1", "bob", "offline"),
        ("agt-2", "carol", "offline"),
    }


def test_agent_sets_own_presence(client: TestClient, presence_broadcaster: MagicMock) -> None:
    """Given an agent, when it sets its own status, then the change is stored and broadcast."""
    response = client.patch(
        "/api/agents/agt-1/presence", headers=BOB, json={"presenceStatus": "busy"}
    )

    assert response.status_code == 200
    assert response.json()["presence"]["presenceStatus"] == "busy"
    presence_broadcaster.broadcast_presence.assert_awaited_once()
    current = client.get("/api/agents/agt-1/presence", headers=CAROL).json()["presence"]
    assert current["presenceStatus"] == "busy"


def test_presence_update_permissions_and_validation(client: TestClient) -> None:
    """Given various callers and statuses, when updating presence, then rules are enforced."""
    path = "/api/agents/agt-1/presence"

    assert client.patch(path, headers=CAROL, json={"presenceStatus": "busy"}).status_code == 403
    assert client.patch(path, headers=ADMIN, json={"presenceStatus": "dnd"}).status_code == 200
    assert client.patch(path, headers=BOB, json={"presenceStatus": "offline"}).status_code == 400
    assert client.patch(path, headers=BOB, json={"presenceStatus": "napping"}).status_code == 400
    assert client.patch(path, headers=BOB, json={}).status_code == 400
    assert (
        client.patch("/api/agents/agt-9/presence", headers=ADMIN, json={"presenceStatus": "busy"})
    ).status_code == 404


def test_auto_start_is_idempotent(client: TestClient) -> None:
    """Given no running entry, when starting twice, then one entry is created and then returned."""
    body = {"agentId": "agt-1", "ticketId": "T-1001"}

    first = client.post("/api/worklogs/auto/start", headers=BOB, json=body)
    second = client.post("/api/worklogs/auto/start", headers=BOB, json=body)

    assert first.status_code == 201
    assert first.json()["worklog"]["id"] == "w1"
    assert second.status_code == 200
    assert second.json()["worklog"]["id"] == "w1"
    assert second.json()["message"] == "Worklog already active"

    active = client.get(
        "/api/worklogs/active", headers=BOB, params={"agentId": "agt-1", "ticketId": "T-1001"}
    ).json()
    assert active["worklog"]["id"] == "w1"


def test_auto_start_errors(client: TestClient) -> None:
    """Given bad requests, when auto-starting, then they are rejected."""
    path = "/api/worklogs/auto/start"

    assert client.post(path, headers=BOB, json={"agentId": "agt-1"}).status_code == 400
    assert (
        client.post(path, headers=BOB, json={"agentId": "agt-2", "ticketId": "T-1001"})
    ).status_code == 403
    assert (
        client.post(path, headers=BOB, json={"agentId": "agt-1", "ticketId": "T-9"})
    ).status_code == 404
    assert client.post(path, json={"agentId": "agt-1", "ticketId": "T-1001"}).status_code == 401


def test_beacon_stop_with_token_in_body(client: TestClient, clock) -> None:
    """Given a running entry, when a text/plain unload beacon arrives twice, then it closes once."""
    client.post(
        "/api/worklogs/auto/start", headers=BOB, json={"agentId": "agt-1", "ticketId": "T-1001"}
    )
    clock.advance(90)
    beacon = json.dumps(
        {
            "agentId": "agt-1",
            "ticketId": "T-1001",
            "worklogId": "w1",
            "stopReason": "page_unload",
            "token": "bob-token",
        }
    )

    first = client.post(
        "/api/worklogs/auto/stop", content=beacon, headers={"Content-Type": "text/plain"}
    )
    second = client.post(
        "/api/worklogs/auto/stop", content=beacon, headers={"Content-Type": "text/plain"}
    )

    assert first.status_code == 200
    worklog = first.json()["worklog"]
    assert worklog["stopReason"] == "page_unload"
    assert worklog["endedAt"] is not None
    assert "message" not in first.json()
    assert second.status_code == 200
    assert second.json()["message"] == "Worklog already stopped"


def test_stop_without_running_entry_is_not_found(client: TestClient) -> None:
    response = client.post(
        "/api/worklogs/auto/stop", headers=BOB, json={"agentId": "agt-1", "ticketId": "T-1001"}
    )

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "No active worklog found"}


def test_manual_worklog_and_listing(client: TestClient) -> None:
    """Given a manual entry, when listing with filters, then it is returned."""
    created = client.post(
        "/api/worklogs",
        headers=BOB,
        json={
            "agentId": "agt-1",
            "ticketId": "T-1001",
            "startedAt": "2024-05-01T08:00:00",
            "endedAt": "2024-05-01T08:45:00Z",
            "description": "Phone call",
        },
    )
    assert created.status_code == 201
    assert created.json()["worklog"]["source"] == "manual"

    listed = client.get(
        "/api/worklogs", headers=ADMIN, params={"ticketId": "T-1001", "startDate": "2024-05-01"}
    ).json()
    assert listed["total"] == 1
    assert listed["worklogs"][0]["description"] == "Phone call"

    assert client.get("/api/worklogs", headers=ADMIN, params={"agentId": "agt-2"}).json()[
        "total"
    ] == 0


def test_manual_worklog_validation(client: TestClient) -> None:
    """Given invalid manual entries, when created, then 400 is returned."""
    base = {"agentId": "agt-1", "ticketId": "T-1001"}

    backwards = client.post(
        "/api/worklogs",
        headers=BOB,
        json={**base, "startedAt": "2024-05-01T09:00:00Z", "endedAt": "2024-05-01T08:00:00Z"},
    )
    unassigned = client.post(
        "/api/worklogs",
        headers=BOB,
        json={
            **base,
            "ticketId": "T-1002",
            "startedAt": "2024-05-01T08:00:00Z",
            "endedAt": "2024-05-01T09:00:00Z",
        },
    )
    missing = client.post("/api/worklogs", headers=BOB, json=base)

    assert backwards.status_code == 400
    assert backwards.json()["message"] == "End time must be after start time"
    assert unassigned.status_code == 400
    assert missing.status_code == 400


def test_list_worklogs_rejects_bad_dates(client: TestClient) -> None:
    assert (
        client.get("/api/worklogs", headers=ADMIN, params={"startDate": "yesterday"})
    ).status_code == 400
    assert (
        client.get(
            "/api/worklogs",
            headers=ADMIN,
            params={"startDate": "2024-05-02", "endDate": "2024-05-01"},
        )
    ).status_code == 400


def start_and_stop(client: TestClient, clock, seconds: int = 90) -> dict:
    pair = {"agentId": "agt-1", "ticketId": "T-1001"}
    client.post("/api/worklogs/auto/start", headers=BOB, json=pair)
    clock.advance(seconds)
    return client.post("/api/worklogs/auto/stop", headers=BOB, json=pair).json()["worklog"]


def test_get_worklog_by_id(client: TestClient, clock) -> None:
    stopped = start_and_stop(client, clock)

    response = client.get("/api/worklogs/w1", headers=CAROL)

    assert response.status_code == 200
    assert response.json()["worklog"] == stopped
    assert client.get("/api/worklogs/w404", headers=ADMIN).status_code == 404
    assert client.get("/api/worklogs/w1").status_code == 401


def test_patch_worklog_corrects_end_time(client: TestClient, clock) -> None:
    """Given a stopped entry, when its owner moves the end, then duration and reason follow."""
    start_and_stop(client, clock)

    response = client.patch(
        "/api/worklogs/w1",
        headers=BOB,
        json={"endedAt": "2024-05-01T10:00:00Z", "stopReason": "manual"},
    )

    assert response.status_code == 200
    worklog = response.json()["worklog"]
    assert worklog["durationSeconds"] == 3600
    assert worklog["stopReason"] == "manual"
    assert worklog["startedAt"] == "2024-05-01T09:00:00Z"


def test_patch_worklog_errors(client: TestClient, clock) -> None:
    """Given a stopped entry of Bob, when invalid edits arrive, then each is refused."""
    start_and_stop(client, clock)

    backwards = client.patch(
        "/api/worklogs/w1", headers=BOB, json={"endedAt": "2024-05-01T08:00:00Z"}
    )
    other_agent = client.patch(
        "/api/worklogs/w1", headers=CAROL, json={"stopReason": "manual"}
    )
    unknown = client.patch("/api/worklogs/w404", headers=ADMIN, json={"stopReason": "manual"})
    empty = client.patch("/api/worklogs/w1", headers=BOB, json={})
    anonymous = client.patch("/api/worklogs/w1", json={"stopReason": "manual"})

    assert backwards.status_code == 400
    assert backwards.json()["message"] == "End time must be after start time"
    assert other_agent.status_code == 403
    assert unknown.status_code == 404
    assert empty.status_code == 400
    assert anonymous.status_code == 401
    assert client.patch(
        "/api/worklogs/w1", headers=ADMIN, json={"stopReason": "reassigned"}
    ).status_code == 200


def test_patch_refuses_to_reopen_beside_running_entry(client: TestClient, clock) -> None:
    """Given a newer running entry, when an older one is reopened, then 409 is returned."""
    start_and_stop(client, clock)
    client.post(
        "/api/worklogs/auto/start", headers=BOB, json={"agentId": "agt-1", "ticketId": "T-1001"}
    )

    conflict = client.patch("/api/worklogs/w1", headers=BOB, json={"endedAt": None})

    assert conflict.status_code == 409
    active = client.get(
        "/api/worklogs/active", headers=BOB, params={"agentId": "agt-1", "ticketId": "T-1001"}
    ).json()["worklog"]
    assert active["id"] == "w2"
