"""Client adapters: realtime connection, REST client and page controllers."""

from helpdesk_realtime.adapters.client.api_client import HelpdeskApiClient
from helpdesk_realtime.adapters.client.beacon_sender import AiohttpBeaconSender
from helpdesk_realtime.adapters.client.connection_manager import (
    ConnectionManager,
    ConnectionSettings,
)
from helpdesk_realtime.adapters.client.presence_mirror import PresenceMirror
from helpdesk_realtime.adapters.client.socketio_transport import SocketIoTransport
from helpdesk_realtime.adapters.client.state_store import ClientStateStore
from helpdesk_realtime.adapters.client.viewer_client import TicketViewerClient, ViewerListState
from helpdesk_realtime.adapters.client.worklog_timer import (
    StopReason,
    TimerState,
    WorklogTimerController,
)

__all__ = [
    "AiohttpBeaconSender",
    "ClientStateStore",
    "ConnectionManager",
    "ConnectionSettings",
    "HelpdeskApiClient",
    "PresenceMirror",
    "SocketIoTransport",
    "StopReason",
    "TicketViewerClient",
    "TimerState",
    "ViewerListState",
    "WorklogTimerController",
]
