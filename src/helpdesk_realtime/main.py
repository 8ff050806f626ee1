"""Main entry point for the helpdesk realtime server."""

import asyncio
import logging
import sys

from helpdesk_realtime.adapters.config import AppConfig
from helpdesk_realtime.adapters.config.roster_configuration_loader import (
    RosterConfigurationLoader,
)
from helpdesk_realtime.adapters.persistence import (
    InMemoryDirectoryRepository,
    InMemoryTicketRepository,
    InMemoryWorklogRepository,
)
from helpdesk_realtime.adapters.web import RealtimeWebAdapter, create_socketio_server
from helpdesk_realtime.adapters.web.broadcasters import (
    PresenceBroadcaster,
    TicketBroadcaster,
    ViewerBroadcaster,
)
from helpdesk_realtime.application.services import (
    PresenceStore,
    TicketService,
    ViewerRegistry,
    WorklogService,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    config = AppConfig()

    # Load the roster
    try:
        roster = RosterConfigurationLoader.load(config)
    except FileNotFoundError as e:
        logger.error(str(e))
        logger.error("Copy roster.example.toml to roster.toml or set ROSTER_FILE.")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid roster configuration: {e}")
        sys.exit(1)

    logger.info(
        f"Loaded roster: {len(roster.admins)} admin(s), {len(roster.agents)} agent(s), "
        f"{len(roster.tickets)} ticket(s)"
    )
    if not roster.agents:
        logger.warning("No agents configured; presence will stay empty.")

    directory = InMemoryDirectoryRepository(roster)
    ticket_repo = InMemoryTicketRepository(roster)
    worklog_repo = InMemoryWorklogRepository()

    sio = create_socketio_server(config)

    # Initialize services
    presence = PresenceStore(PresenceBroadcaster(sio))
    for agent in roster.agents:
        presence.register_agent(agent.id, agent.slug)
    viewers = ViewerRegistry(ViewerBroadcaster(sio))
    worklogs = WorklogService(worklog_repo, directory, ticket_repo)
    tickets = TicketService(ticket_repo, directory, TicketBroadcaster(sio))

    web_adapter = RealtimeWebAdapter(
        config,
        sio,
        presence=presence,
        viewers=viewers,
        worklogs=worklogs,
        tickets=tickets,
        directory=directory,
    )

    try:
        await web_adapter.start()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        await web_adapter.stop()


def run() -> None:
    """Synchronous entry point for the server command."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
