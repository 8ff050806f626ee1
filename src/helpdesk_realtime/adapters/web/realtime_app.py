"""Web adapter serving the REST routes and the realtime endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import socketio
from starlette.applications import Starlette

from helpdesk_realtime.adapters.config import AppConfig
from helpdesk_realtime.adapters.web.realtime_server import RealtimeServer
from helpdesk_realtime.adapters.web.routes import (
    create_directory_routes,
    create_health_routes,
    create_presence_routes,
    create_worklog_routes,
)

if TYPE_CHECKING:
    from helpdesk_realtime.application.services import (
        PresenceStore,
        TicketService,
        ViewerRegistry,
        WorklogService,
    )
    from helpdesk_realtime.domain.ports import DirectoryRepository

logger = logging.getLogger(__name__)


def create_socketio_server(config: AppConfig) -> socketio.AsyncServer:
    """Create the Socket.IO server configured for ASGI."""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=config.cors_origins,
        ping_interval=config.ping_interval_seconds,
        ping_timeout=config.ping_timeout_seconds,
        transports=config.transport_list,
    )


class RealtimeWebAdapter:
    """Serves the helpdesk REST API and realtime channel from one ASGI app."""

    def __init__(
        self,
        config: AppConfig,
        sio: socketio.AsyncServer,
        presence: PresenceStore,
        viewers: ViewerRegistry,
        worklogs: WorklogService,
        tickets: TicketService,
        directory: DirectoryRepository,
    ) -> None:
        """Initialize the web adapter.

        Args:
            config: Application configuration.
            sio: Realtime server the broadcasters emit through.
            presence: Authoritative presence of agents.
            viewers: Authoritative ticket viewers.
            worklogs: Worklog use cases.
            tickets: Ticket assignment use cases.
            directory: Directory of admins and agents.
        """
        if not isinstance(config, AppConfig):
            raise TypeError("config must be an AppConfig instance")

        self.config = config
        self.sio = sio
        self.presence = presence
        self.viewers = viewers
        self.worklogs = worklogs
        self.tickets = tickets
        self.directory = directory
        self.realtime_server = RealtimeServer(sio, presence, viewers, directory)
        self._server: Any | None = None

    def create_app(self) -> socketio.ASGIApp:
        """Build the ASGI application."""
        routes = [
            *create_health_routes(),
            *create_presence_routes(self.presence, self.directory),
            *create_directory_routes(self.directory, self.tickets),
            *create_worklog_routes(self.worklogs, self.directory),
        ]
        api = Starlette(routes=routes)
        logger.info(
            f"Serving {len(routes)} REST route(s) and realtime endpoint at "
            f"/{self.config.socketio_path.strip('/')}"
        )
        return socketio.ASGIApp(
            self.sio, other_asgi_app=api, socketio_path=self.config.socketio_path
        )

    async def start(self) -> None:
        """Start the web server."""
        import uvicorn

        config = uvicorn.Config(
            self.create_app(),
            host=self.config.host,
            port=self.config.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)

        await self._server.serve()

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server:
            self._server.should_exit = True
