"""Helpers for extracting client details from a realtime handshake environ.

python-socketio hands connect handlers a WSGI-style environ even under ASGI, so
headers appear as ``HTTP_*`` keys.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs

from helpdesk_realtime.domain.models.client_info import ClientInfo

_MAX_USER_AGENT_LENGTH = 200


def get_client_info_from_environ(environ: dict[str, Any] | None) -> ClientInfo:
    """Extract client IP and user agent.

    Values that are not available fall back to ``"unknown"``.
    """
    if not isinstance(environ, dict):
        return ClientInfo(ip="unknown", user_agent="unknown")

    user_agent = str(environ.get("HTTP_USER_AGENT") or "unknown")
    # Avoid excessively long user agent strings in logs
    if len(user_agent) > _MAX_USER_AGENT_LENGTH:
        user_agent = f"{user_agent[: _MAX_USER_AGENT_LENGTH - 3]}..."

    # Prefer the forwarded header if present, otherwise fall back to the peer address
    ip = "unknown"
    forwarded_for = environ.get("HTTP_X_FORWARDED_FOR")
    if forwarded_for:
        # X-Forwarded-For may contain a list: client, proxy1, proxy2, ...
        first = str(forwarded_for).split(",")[0].strip()
        if first:
            ip = first
    elif environ.get("REMOTE_ADDR"):
        ip = str(environ["REMOTE_ADDR"])

    return ClientInfo(ip=ip, user_agent=user_agent)


def get_token_from_environ(environ: dict[str, Any] | None) -> str | None:
    """Find a bearer token in the ``Authorization`` header or the ``token`` query parameter."""
    if not isinstance(environ, dict):
        return None

    authorization = str(environ.get("HTTP_AUTHORIZATION") or "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    query = parse_qs(str(environ.get("QUERY_STRING") or ""))
    tokens = query.get("token")
    return tokens[0] if tokens else None
