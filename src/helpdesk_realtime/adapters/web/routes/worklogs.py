"""REST routes for worklogs."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from starlette.responses import JSONResponse
from starlette.routing import Route

from helpdesk_realtime.adapters.web.routes.common import (
    authenticate,
    ensure_aware,
    error_response,
    parse_query_datetime,
    read_json_body,
    validation_message,
)
from helpdesk_realtime.domain.errors import (
    NotFoundError,
    WorklogConflictError,
    WorklogValidationError,
)
from helpdesk_realtime.domain.models.viewer import UserType

if TYPE_CHECKING:
    from starlette.requests import Request

    from helpdesk_realtime.application.services.worklog_service import WorklogService
    from helpdesk_realtime.domain.models.directory import DirectoryUser
    from helpdesk_realtime.domain.ports import DirectoryRepository

logger = logging.getLogger(__name__)


class _WorklogRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    agent_id: str = Field(min_length=1)
    ticket_id: str = Field(min_length=1)


class AutoStartRequest(_WorklogRequest):
    """Body of ``POST /api/worklogs/auto/start``."""


class AutoStopRequest(_WorklogRequest):
    """Body of ``POST /api/worklogs/auto/stop``."""

    worklog_id: str | None = None
    stop_reason: str | None = None


class ManualWorklogRequest(_WorklogRequest):
    """Body of ``POST /api/worklogs``."""

    started_at: datetime
    ended_at: datetime
    description: str | None = None

    @field_validator("started_at", "ended_at")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Take naive timestamps as UTC."""
        return ensure_aware(v)


class WorklogUpdateRequest(BaseModel):
    """Body of ``PATCH /api/worklogs/{worklog_id}``; only the fields sent are changed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    started_at: datetime | None = None
    ended_at: datetime | None = None
    stop_reason: str | None = None

    @field_validator("started_at", "ended_at")
    @classmethod
    def validate_timezone(cls, v: datetime | None) -> datetime | None:
        """Take naive timestamps as UTC."""
        return ensure_aware(v) if v is not None else None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(include=self.model_fields_set)


def _may_act_for(caller: DirectoryUser, agent_id: str) -> bool:
    return caller.type is UserType.ADMIN or caller.id == agent_id


def create_worklog_routes(
    worklogs: WorklogService, directory: DirectoryRepository
) -> list[Route]:
    """Create the worklog routes.

    Args:
        worklogs: Worklog use cases.
        directory: Resolves callers.
    """

    async def _parse(
        request: Request, model: type[BaseModel]
    ) -> tuple[Any, DirectoryUser | None, JSONResponse | None]:
        try:
            body = await read_json_body(request)
        except ValueError as e:
            return None, None, error_response(str(e), 400)
        caller = await authenticate(request, directory, body)
        if caller is None:
            return None, None, error_response("Unauthorized", 401)
        try:
            parsed = model.model_validate(body)
        except ValidationError as e:
            return None, caller, error_response(validation_message(e), 400)
        if not _may_act_for(caller, parsed.agent_id):  # type: ignore[attr-defined]
            return None, caller, error_response("Cannot record time for another agent", 403)
        return parsed, caller, None

    async def worklogs_collection(request: Request) -> JSONResponse:
        """List (GET) or manually create (POST) worklogs."""
        if request.method == "POST":
            return await create_manual(request)

        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        params = request.query_params
        try:
            entries = await worklogs.list_worklogs(
                ticket_id=params.get("ticketId") or None,
                agent_id=params.get("agentId") or None,
                start_date=parse_query_datetime(params.get("startDate"), "startDate"),
                end_date=parse_query_datetime(params.get("endDate"), "endDate"),
            )
        except ValueError as e:
            return error_response(str(e), 400)
        return JSONResponse(
            {"success": True, "worklogs": [e.to_payload() for e in entries], "total": len(entries)}
        )

    async def create_manual(request: Request) -> JSONResponse:
        parsed, _caller, error = await _parse(request, ManualWorklogRequest)
        if error is not None:
            return error
        try:
            entry = await worklogs.create_manual(
                parsed.agent_id,
                parsed.ticket_id,
                parsed.started_at,
                parsed.ended_at,
                parsed.description,
            )
        except WorklogValidationError as e:
            return error_response(str(e), 400)
        return JSONResponse({"success": True, "worklog": entry.to_payload()}, status_code=201)

    async def active_worklog(request: Request) -> JSONResponse:
        """The unfinished entry of an (agent, ticket) pair, or ``null``."""
        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        agent_id = request.query_params.get("agentId")
        ticket_id = request.query_params.get("ticketId")
        if not agent_id or not ticket_id:
            return error_response("agentId and ticketId are required", 400)
        entry = await worklogs.find_active(agent_id, ticket_id)
        return JSONResponse(
            {"success": True, "worklog": entry.to_payload() if entry is not None else None}
        )

    async def auto_start(request: Request) -> JSONResponse:
        parsed, _caller, error = await _parse(request, AutoStartRequest)
        if error is not None:
            return error
        try:
            entry, created = await worklogs.auto_start(parsed.agent_id, parsed.ticket_id)
        except NotFoundError as e:
            return error_response(str(e), 404)
        if not created:
            return JSONResponse(
                {"success": True, "worklog": entry.to_payload(), "message": "Worklog already active"}
            )
        return JSONResponse({"success": True, "worklog": entry.to_payload()}, status_code=201)

    async def auto_stop(request: Request) -> JSONResponse:
        """Stop the running entry; also the target of page-unload beacons."""
        parsed, _caller, error = await _parse(request, AutoStopRequest)
        if error is not None:
            return error
        try:
            entry, stopped = await worklogs.auto_stop(
                parsed.agent_id, parsed.ticket_id, parsed.worklog_id, parsed.stop_reason
            )
        except NotFoundError as e:
            return error_response(str(e), 404)
        content: dict[str, Any] = {"success": True, "worklog": entry.to_payload()}
        if not stopped:
            content["message"] = "Worklog already stopped"
        return JSONResponse(content)

    async def worklog_item(request: Request) -> JSONResponse:
        """Read (GET) or correct (PATCH) one entry."""
        worklog_id = request.path_params["worklog_id"]
        if request.method == "PATCH":
            return await update_worklog(request, worklog_id)

        if await authenticate(request, directory) is None:
            return error_response("Unauthorized", 401)
        try:
            entry = await worklogs.get(worklog_id)
        except NotFoundError as e:
            return error_response(str(e), 404)
        return JSONResponse({"success": True, "worklog": entry.to_payload()})

    async def update_worklog(request: Request, worklog_id: str) -> JSONResponse:
        try:
            body = await read_json_body(request)
        except ValueError as e:
            return error_response(str(e), 400)
        caller = await authenticate(request, directory, body)
        if caller is None:
            return error_response("Unauthorized", 401)
        try:
            parsed = WorklogUpdateRequest.model_validate(body)
        except ValidationError as e:
            return error_response(validation_message(e), 400)
        if not parsed.changes():
            return error_response("Nothing to update: send startedAt, endedAt or stopReason", 400)

        try:
            entry = await worklogs.get(worklog_id)
            if not _may_act_for(caller, entry.agent_id):
                return error_response("Cannot edit time of another agent", 403)
            updated = await worklogs.update(worklog_id, parsed.changes())
        except NotFoundError as e:
            return error_response(str(e), 404)
        except WorklogConflictError as e:
            return error_response(str(e), 409)
        except WorklogValidationError as e:
            return error_response(str(e), 400)
        return JSONResponse({"success": True, "worklog": updated.to_payload()})

    return [
        Route("/api/worklogs", worklogs_collection, methods=["GET", "POST"]),
        Route("/api/worklogs/active", active_worklog, methods=["GET"]),
        Route("/api/worklogs/auto/start", auto_start, methods=["POST"]),
        Route("/api/worklogs/auto/stop", auto_stop, methods=["POST"]),
        Route("/api/worklogs/{worklog_id}", worklog_item, methods=["GET", "PATCH"]),
    ]
