"""Helpers shared by the REST route modules."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from starlette.requests import Request

    from helpdesk_realtime.domain.models.directory import DirectoryUser
    from helpdesk_realtime.domain.ports import DirectoryRepository

logger = logging.getLogger(__name__)


def error_response(message: str, status_code: int) -> JSONResponse:
    """``{success: false, message}`` with the given status."""
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def validation_message(error: ValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "body"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


async def read_json_body(request: Request) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    The content type is not checked: page-unload beacons arrive as ``text/plain``.

    Raises:
        ValueError: If the body is not a JSON object.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Request body is not valid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


async def authenticate(
    request: Request, directory: DirectoryRepository, body: dict[str, Any] | None = None
) -> DirectoryUser | None:
    """Resolve the caller from ``Authorization: Bearer`` or a ``token`` body field.

    The body field exists for beacons, which cannot carry headers.
    """
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    token = credentials.strip() if scheme.lower() == "bearer" else ""
    if not token and body:
        token = str(body.get("token") or "")
    if not token:
        return None
    user = await directory.find_by_token(token)
    if user is None:
        logger.warning(f"Rejected {request.method} {request.url.path}: unknown token")
    return user


def parse_query_datetime(value: str | None, name: str) -> datetime | None:
    """Parse an ISO 8601 query parameter, naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a valid date or datetime.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"{name} must be an ISO 8601 date or datetime") from e
    return ensure_aware(parsed)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
