"""Starlette REST routes."""

from helpdesk_realtime.adapters.web.routes.directory import create_directory_routes
from helpdesk_realtime.adapters.web.routes.health import create_health_routes
from helpdesk_realtime.adapters.web.routes.presence import create_presence_routes
from helpdesk_realtime.adapters.web.routes.worklogs import create_worklog_routes

__all__ = [
    "create_directory_routes",
    "create_health_routes",
    "create_presence_routes",
    "create_worklog_routes",
]
