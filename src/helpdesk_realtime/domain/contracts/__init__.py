"""Contracts between the application core and its adapters."""

from helpdesk_realtime.domain.contracts.beacon_sender import BeaconSenderProtocol
from helpdesk_realtime.domain.contracts.presence_api import DirectoryApiProtocol, PresenceApiProtocol
from helpdesk_realtime.domain.contracts.presence_broadcaster import PresenceBroadcasterProtocol
from helpdesk_realtime.domain.contracts.realtime_transport import (
    EventHandler,
    RealtimeTransportProtocol,
)
from helpdesk_realtime.domain.contracts.ticket_broadcaster import TicketBroadcasterProtocol
from helpdesk_realtime.domain.contracts.viewer_broadcaster import ViewerBroadcasterProtocol
from helpdesk_realtime.domain.contracts.worklog_api import WorklogApiProtocol

__all__ = [
    "BeaconSenderProtocol",
    "DirectoryApiProtocol",
    "EventHandler",
    "PresenceApiProtocol",
    "PresenceBroadcasterProtocol",
    "RealtimeTransportProtocol",
    "TicketBroadcasterProtocol",
    "ViewerBroadcasterProtocol",
    "WorklogApiProtocol",
]
