"""REST routes for the roster and ticket assignment."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse
from starlette.routing import Route

from helpdesk_realtime.adapters.web.routes.common import (
    authenticate,
    error_response,
    read_json_body,
)
from helpdesk_realtime.domain.errors import NotFoundError

if TYPE_CHECKING:
    from starlette.requests import Request

    from helpdesk_realtime.application.services.ticket_service import TicketService
    from helpdesk_realtime.domain.ports import DirectoryRepository


def create_directory_routes(
    directory: DirectoryRepository, tickets: TicketService
) -> list[Route]:
    """Create the roster and ticket routes."""

    async def me(request: Request) -> JSONResponse:
        """Profile of the authenticated user."""
        user = await authenticate(request, directory)
        if user is None:
            return error_response("Unauthorized", 401)
        return JSONResponse({"success": True, "user": user.public_profile()})

    async def roster(request: Request) -> JSONResponse:
        """Admins and agents that can be mentioned, without credentials."""
        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        admins = await directory.list_admins()
        agents = await directory.list_agents()
        return JSONResponse(
            {
                "success": True,
                "admins": [a.public_profile() for a in admins],
                "agents": [a.public_profile() for a in agents],
            }
        )

    async def get_ticket(request: Request) -> JSONResponse:
        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        try:
            ticket = await tickets.get(request.path_params["ticket_id"])
        except NotFoundError as e:
            return error_response(str(e), 404)
        return JSONResponse({"success": True, "ticket": ticket.to_payload()})

    async def assign_ticket(request: Request) -> JSONResponse:
        """Change the assignee; ``null`` or ``"unassigned"`` clears it."""
        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        try:
            body = await read_json_body(request)
        except ValueError as e:
            return error_response(str(e), 400)
        if "assigneeId" not in body:
            return error_response("assigneeId is required", 400)
        try:
            ticket = await tickets.assign(request.path_params["ticket_id"], body["assigneeId"])
        except NotFoundError as e:
            return error_response(str(e), 404)
        return JSONResponse({"success": True, "ticket": ticket.to_payload()})

    return [
        Route("/api/me", me, methods=["GET"]),
        Route("/api/roster", roster, methods=["GET"]),
        Route("/api/tickets/{ticket_id}", get_ticket, methods=["GET"]),
        Route("/api/tickets/{ticket_id}/assignee", assign_ticket, methods=["PATCH"]),
    ]
