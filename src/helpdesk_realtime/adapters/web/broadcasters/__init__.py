"""Broadcasters fanning state changes out over the realtime server."""

from helpdesk_realtime.adapters.web.broadcasters.presence_broadcaster import PresenceBroadcaster
from helpdesk_realtime.adapters.web.broadcasters.ticket_broadcaster import TicketBroadcaster
from helpdesk_realtime.adapters.web.broadcasters.viewer_broadcaster import ViewerBroadcaster

__all__ = ["PresenceBroadcaster", "TicketBroadcaster", "ViewerBroadcaster"]
