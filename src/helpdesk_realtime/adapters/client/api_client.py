"""REST client for the helpdesk API."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic.alias_generators import to_camel

from helpdesk_realtime.adapters.api_request_logger import log_api_request, log_api_response
from helpdesk_realtime.domain.errors import ApiError
from helpdesk_realtime.domain.models.directory import DirectoryUser, Ticket
from helpdesk_realtime.domain.models.presence import PresenceRecord
from helpdesk_realtime.domain.models.viewer import UserType
from helpdesk_realtime.domain.models.worklog import WorklogEntry

if TYPE_CHECKING:
    from helpdesk_realtime.domain.models.presence import PresenceStatus

logger = logging.getLogger(__name__)


class HelpdeskApiClient:
    """aiohttp client for the presence, directory and worklog endpoints.

    Every non-success answer raises :class:`ApiError` carrying the server's message.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession,
        token: str | None = None,
        timeout_seconds: float = 10,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server base URL, e.g. ``http://localhost:8000``.
            session: Shared aiohttp session.
            token: Bearer token of the logged-in user.
            timeout_seconds: Total timeout per request.
        """
        self._base_url = base_url.rstrip("/")
        self._session = session
        self.token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        log_api_request(method, url, params=query, headers=headers, payload=payload)
        started = time.monotonic()
        try:
            async with self._session.request(
                method, url, params=query, json=payload, headers=headers, timeout=self._timeout
            ) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(f"Could not reach the helpdesk server: {e}") from e
        log_api_response(method, url, status, (time.monotonic() - started) * 1000)

        if not isinstance(data, dict):
            raise ApiError(f"Unexpected response from {path} (HTTP {status})", status)
        if status >= 400 or not data.get("success", False):
            raise ApiError(data.get("message") or f"HTTP {status}", status)
        return data

    async def fetch_presence(self) -> list[PresenceRecord]:
        data = await self._request("GET", "/api/agents/presence")
        return [PresenceRecord.model_validate(item) for item in data.get("presence", [])]

    async def update_presence(self, agent_id: str, status: PresenceStatus | str) -> PresenceRecord:
        data = await self._request(
            "PATCH", f"/api/agents/{agent_id}/presence", payload={"presenceStatus": str(status)}
        )
        return PresenceRecord.model_validate(data["presence"])

    async def fetch_roster(self) -> tuple[list[DirectoryUser], list[DirectoryUser]]:
        data = await self._request("GET", "/api/roster")
        admins = [
            DirectoryUser.model_validate({**item, "type": UserType.ADMIN})
            for item in data.get("admins", [])
        ]
        agents = [
            DirectoryUser.model_validate({**item, "type": UserType.AGENT})
            for item in data.get("agents", [])
        ]
        return admins, agents

    async def fetch_me(self) -> DirectoryUser:
        """Resolve the client's token to its user."""
        data = await self._request("GET", "/api/me")
        return DirectoryUser.model_validate(data["user"])

    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        data = await self._request("GET", f"/api/tickets/{ticket_id}")
        return Ticket.model_validate(data["ticket"])

    async def assign_ticket(self, ticket_id: str, assignee_id: str | None) -> Ticket:
        data = await self._request(
            "PATCH", f"/api/tickets/{ticket_id}/assignee", payload={"assigneeId": assignee_id}
        )
        return Ticket.model_validate(data["ticket"])

    async def find_active_worklog(self, agent_id: str, ticket_id: str) -> WorklogEntry | None:
        data = await self._request(
            "GET", "/api/worklogs/active", params={"agentId": agent_id, "ticketId": ticket_id}
        )
        worklog = data.get("worklog")
        return WorklogEntry.model_validate(worklog) if worklog else None

    async def auto_start_worklog(self, agent_id: str, ticket_id: str) -> WorklogEntry:
        data = await self._request(
            "POST",
            "/api/worklogs/auto/start",
            payload={"agentId": agent_id, "ticketId": ticket_id},
        )
        return WorklogEntry.model_validate(data["worklog"])

    async def auto_stop_worklog(
        self,
        agent_id: str,
        ticket_id: str,
        worklog_id: str | None = None,
        stop_reason: str | None = None,
    ) -> WorklogEntry:
        data = await self._request(
            "POST",
            "/api/worklogs/auto/stop",
            payload={
                "agentId": agent_id,
                "ticketId": ticket_id,
                "worklogId": worklog_id,
                "stopReason": stop_reason,
            },
        )
        return WorklogEntry.model_validate(data["worklog"])

    async def create_manual_worklog(
        self,
        agent_id: str,
        ticket_id: str,
        started_at: datetime,
        ended_at: datetime,
        description: str | None = None,
    ) -> WorklogEntry:
        data = await self._request(
            "POST",
            "/api/worklogs",
            payload={
                "agentId": agent_id,
                "ticketId": ticket_id,
                "startedAt": started_at.isoformat(),
                "endedAt": ended_at.isoformat(),
                "description": description,
            },
        )
        return WorklogEntry.model_validate(data["worklog"])

    async def list_worklogs(
        self,
        ticket_id: str | None = None,
        agent_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[WorklogEntry]:
        data = await self._request(
            "GET",
            "/api/worklogs",
            params={
                "ticketId": ticket_id,
                "agentId": agent_id,
                "startDate": start_date.isoformat() if start_date else None,
                "endDate": end_date.isoformat() if end_date else None,
            },
        )
        return [WorklogEntry.model_validate(item) for item in data.get("worklogs", [])]

    async def get_worklog(self, worklog_id: str) -> WorklogEntry:
        data = await self._request("GET", f"/api/worklogs/{worklog_id}")
        return WorklogEntry.model_validate(data["worklog"])

    async def update_worklog(self, worklog_id: str, **changes: Any) -> WorklogEntry:
        """Correct an entry; pass ``ended_at=None`` to reopen it.

        Args:
            worklog_id: Entry to edit.
            **changes: Any of ``started_at``, ``ended_at`` and ``stop_reason``.
        """
        payload = {
            to_camel(name): value.isoformat() if isinstance(value, datetime) else value
            for name, value in changes.items()
        }
        data = await self._request("PATCH", f"/api/worklogs/{worklog_id}", payload=payload)
        return WorklogEntry.model_validate(data["worklog"])
