"""REST routes for agent presence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse
from starlette.routing import Route

from helpdesk_realtime.adapters.web.routes.common import (
    authenticate,
    error_response,
    read_json_body,
)
from helpdesk_realtime.domain.errors import PresenceValidationError
from helpdesk_realtime.domain.models.viewer import UserType

if TYPE_CHECKING:
    from starlette.requests import Request

    from helpdesk_realtime.application.services.presence_store import PresenceStore
    from helpdesk_realtime.domain.ports import DirectoryRepository

logger = logging.getLogger(__name__)


def create_presence_routes(presence: PresenceStore, directory: DirectoryRepository) -> list[Route]:
    """Create the presence routes.

    Args:
        presence: Authoritative presence of agents.
        directory: Resolves agents and callers.
    """

    async def list_presence(request: Request) -> JSONResponse:
        """Presence of every agent, used to seed client mirrors."""
        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        for agent in await directory.list_agents():
            presence.register_agent(agent.id, agent.slug)
        records = presence.snapshot()
        return JSONResponse(
            {"success": True, "presence": [r.to_payload() for r in records], "total": len(records)}
        )

    async def agent_presence(request: Request) -> JSONResponse:
        """Read (GET) or set (PATCH) one agent's status."""
        caller = await authenticate(request, directory)
        if caller is None:
            return error_response("Unauthorized", 401)

        agent = await directory.get_agent(request.path_params["agent_id"])
        if agent is None:
            return error_response("Agent not found", 404)

        if request.method == "GET":
            record = presence.register_agent(agent.id, agent.slug)
            return JSONResponse({"success": True, "presence": record.to_payload()})

        if caller.type is not UserType.ADMIN and caller.id != agent.id:
            return error_response("Agents can only change their own status", 403)

        try:
            body = await read_json_body(request)
        except ValueError as e:
            return error_response(str(e), 400)
        status = body.get("presenceStatus")
        if not status:
            return error_response("presenceStatus is required", 400)
        presence.register_agent(agent.id, agent.slug)
        try:
            record = await presence.set_status(agent.id, status)
        except PresenceValidationError as e:
            return error_response(str(e), 400)
        logger.info(f"{caller.type} {caller.id} set presence of {agent.id} to {status}")
        return JSONResponse({"success": True, "presence": record.to_payload()})

    return [
        Route("/api/agents/presence", list_presence, methods=["GET"]),
        Route("/api/agents/{agent_id}/presence", agent_presence, methods=["GET", "PATCH"]),
    ]
