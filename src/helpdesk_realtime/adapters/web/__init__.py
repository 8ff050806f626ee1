"""Web adapters: REST routes and the realtime server."""

from helpdesk_realtime.adapters.web.realtime_app import RealtimeWebAdapter, create_socketio_server
from helpdesk_realtime.adapters.web.realtime_server import RealtimeServer

__all__ = ["RealtimeServer", "RealtimeWebAdapter", "create_socketio_server"]
