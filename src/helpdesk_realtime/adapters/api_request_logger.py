"""Logging of outgoing REST calls when HELPDESK_LOG_REQUESTS is enabled."""

import json
import logging
import os
from typing import Any
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
_SENSITIVE_FIELDS = frozenset({"token", "password"})
_REDACTED = "***REDACTED***"


def should_log_requests() -> bool:
    """Check if request logging is enabled via the HELPDESK_LOG_REQUESTS environment variable."""
    return os.getenv("HELPDESK_LOG_REQUESTS", "").lower() == "true"


def _with_query(url: str, params: dict[str, Any] | None) -> str:
    if not params:
        return url
    query = urlencode(sorted((k, v) for k, v in params.items() if v is not None))
    if not query:
        return url
    return f"{url}&{query}" if "?" in url else f"{url}?{query}"


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Replace credentials in request headers."""
    return {k: _REDACTED if k.lower() in _SENSITIVE_HEADERS else v for k, v in headers.items()}


def _describe_payload(payload: Any) -> str:
    if isinstance(payload, dict):
        safe = {k: _REDACTED if k in _SENSITIVE_FIELDS else v for k, v in payload.items()}
        return json.dumps(safe, indent=2, default=str)
    return str(payload)


def log_api_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    payload: Any = None,
) -> None:
    """Log an outgoing request if HELPDESK_LOG_REQUESTS is enabled.

    Args:
        method: HTTP method (GET, POST, etc.).
        url: Request URL.
        params: Query parameters (optional).
        headers: Request headers (optional, credentials are redacted).
        payload: Request body (optional, token fields are redacted).
    """
    if not should_log_requests():
        return

    lines = [f"{method} {_with_query(url, params)}"]
    if headers:
        lines.append(f"Headers: {json.dumps(redact_headers(headers), indent=2)}")
    if payload is not None:
        lines.append(f"Payload: {_describe_payload(payload)}")

    logger.info("API Request:\n" + "\n".join(lines))


def log_api_response(method: str, url: str, status: int, elapsed_ms: float) -> None:
    """Log the outcome of a request if HELPDESK_LOG_REQUESTS is enabled."""
    if not should_log_requests():
        return
    logger.info(f"API Response: {method} {url} -> {status} in {elapsed_ms:.0f}ms")
