"""Command line client for the helpdesk realtime server."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiohttp

from helpdesk_realtime.adapters.client import (
    AiohttpBeaconSender,
    ClientStateStore,
    ConnectionManager,
    ConnectionSettings,
    HelpdeskApiClient,
    PresenceMirror,
    SocketIoTransport,
    TicketViewerClient,
    WorklogTimerController,
)
from helpdesk_realtime.adapters.config import AppConfig
from helpdesk_realtime.application.services.mention_resolver import build_roster, resolve
from helpdesk_realtime.domain.errors import ApiError, WorklogValidationError
from helpdesk_realtime.domain.models.events import CONNECT_FAILED, ERROR
from helpdesk_realtime.domain.models.presence import PresenceStatus
from helpdesk_realtime.domain.models.stored_session import StoredSession
from helpdesk_realtime.domain.models.viewer import UserType

if TYPE_CHECKING:
    from helpdesk_realtime.adapters.client.viewer_client import ViewerListState
    from helpdesk_realtime.domain.models.presence import PresenceRecord
    from helpdesk_realtime.domain.models.viewer import ViewerEntry

logger = logging.getLogger(__name__)


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid ISO 8601 timestamp: {value!r}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def worklog_changes(args: argparse.Namespace) -> dict[str, Any]:
    """Fields to send for ``edit-worklog``; ``--reopen`` clears the end time."""
    changes: dict[str, Any] = {}
    if args.start is not None:
        changes["started_at"] = args.start
    if args.reopen:
        changes["ended_at"] = None
    elif args.end is not None:
        changes["ended_at"] = args.end
    if args.reason is not None:
        changes["stop_reason"] = args.reason
    return changes


def format_viewers(viewers: list[ViewerEntry], state: ViewerListState) -> str:
    names = ", ".join(f"{v.user_name} ({v.user_type})" for v in viewers)
    return f"Viewers [{state}]: {names}"


def format_presence(record: PresenceRecord) -> str:
    name = record.agent_slug or record.agent_id
    return f"Presence: {name} is {record.presence_status}"


def require_session(store: ClientStateStore) -> StoredSession:
    session = store.load()
    if session is None:
        print(
            "Not logged in. Run 'helpdesk-realtime-cli login --token <token>' first.",
            file=sys.stderr,
        )
        sys.exit(1)
    return session


async def login(config: AppConfig, store: ClientStateStore, token: str) -> StoredSession:
    """Resolve the token to a user and remember both."""
    async with aiohttp.ClientSession() as http:
        api = HelpdeskApiClient(config.server_url, http, token, config.api_timeout_seconds)
        user = await api.fetch_me()
    session = StoredSession(
        token=token,
        user_id=user.id,
        user_name=user.name,
        user_type=user.type,
        avatar_url=user.avatar_url,
    )
    store.save(session)
    return session


async def watch_ticket(config: AppConfig, session: StoredSession, ticket_id: str) -> None:
    """Open a ticket page until interrupted.

    Shows who else views the ticket and agent presence changes, and runs the
    automatic worklog timer of the ticket's assignee.
    """
    async with aiohttp.ClientSession() as http:
        api = HelpdeskApiClient(config.server_url, http, session.token, config.api_timeout_seconds)
        beacon = AiohttpBeaconSender(config.server_url, http, session.token)
        ticket = await api.fetch_ticket(ticket_id)
        print(f"Ticket {ticket.ticket_id}: {ticket.subject or '(no subject)'}")
        print(f"Assignee: {ticket.assignee_id or 'unassigned'}")

        settings = ConnectionSettings.from_config(config)
        transport = SocketIoTransport(settings.url, settings.socketio_path, list(settings.transports))
        connection = ConnectionManager(transport, settings, token=session.token)
        connection.on_event(ERROR, lambda data: print(f"Realtime error: {data}", file=sys.stderr))
        connection.on_event(
            CONNECT_FAILED,
            lambda data: print("Realtime connection lost for good.", file=sys.stderr),
        )
        connection.on_state_change(lambda state: print(f"Connection: {state}"))

        presence = PresenceMirror(api, connection, on_change=lambda r: print(format_presence(r)))
        viewers = TicketViewerClient(
            connection,
            ticket.ticket_id,
            session.as_viewer(),
            wait_retries=config.viewer_wait_retries,
            wait_interval=config.viewer_wait_interval_seconds,
            on_change=lambda v, state: print(format_viewers(v, state)),
        )
        timer = WorklogTimerController(
            api,
            beacon,
            ticket.ticket_id,
            connection=connection,
            notify=lambda message: print(message, file=sys.stderr),
        )

        await presence.start()
        await connection.connect()
        await viewers.open()
        await timer.mount(ticket.assignee_id)
        if timer.active is not None:
            print(f"Worklog {timer.active.id} running since {timer.active.started_at:%H:%M:%S}")

        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            # Interrupted: leave like a closing page, without waiting for answers
            timer.unload()
            await beacon.flush()
            raise
        finally:
            presence.stop()
            await viewers.close()
            await connection.disconnect()


async def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Helpdesk realtime client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Remember who you are
  helpdesk-realtime-cli login --token bob-token

  # Open a ticket page: viewers, presence and the automatic worklog timer
  helpdesk-realtime-cli watch T-1001

  # Change your presence
  helpdesk-realtime-cli set-presence in_meeting

  # Record time worked outside of a ticket page
  helpdesk-realtime-cli log-time T-1001 --start 2024-05-01T09:00 --end 2024-05-01T09:45

  # Move the end of a worklog entry
  helpdesk-realtime-cli edit-worklog 3f2a --end 2024-05-01T10:00

  # Who would an @-mention reach
  helpdesk-realtime-cli mentions car
        """,
    )
    parser.add_argument("--server", help="Server base URL (default: SERVER_URL or config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    login_parser = subparsers.add_parser("login", help="Store a login token")
    login_parser.add_argument("--token", required=True, help="Authentication token")

    subparsers.add_parser("logout", help="Forget the stored login")
    subparsers.add_parser("whoami", help="Show the stored login")

    watch_parser = subparsers.add_parser("watch", help="Open a ticket page until interrupted")
    watch_parser.add_argument("ticket_id", help="Ticket ID (e.g., T-1001)")

    presence_parser = subparsers.add_parser("set-presence", help="Set your presence status")
    presence_parser.add_argument(
        "status",
        choices=[s for s in PresenceStatus.values() if s != PresenceStatus.OFFLINE],
        help="New status",
    )

    log_parser = subparsers.add_parser("log-time", help="Record a manual worklog entry")
    log_parser.add_argument("ticket_id", help="Ticket ID")
    log_parser.add_argument("--start", required=True, type=parse_datetime, help="Start (ISO 8601)")
    log_parser.add_argument("--end", required=True, type=parse_datetime, help="End (ISO 8601)")
    log_parser.add_argument("--description", help="What was done")
    log_parser.add_argument("--agent", help="Agent ID (default: yourself)")

    worklogs_parser = subparsers.add_parser("worklogs", help="List worklog entries")
    worklogs_parser.add_argument("--ticket", help="Filter by ticket ID")
    worklogs_parser.add_argument("--agent", help="Filter by agent ID")
    worklogs_parser.add_argument("--json", action="store_true", help="Output as JSON")

    edit_parser = subparsers.add_parser("edit-worklog", help="Correct a worklog entry")
    edit_parser.add_argument("worklog_id", help="Worklog ID")
    edit_parser.add_argument("--start", type=parse_datetime, help="New start (ISO 8601)")
    end_group = edit_parser.add_mutually_exclusive_group()
    end_group.add_argument("--end", type=parse_datetime, help="New end (ISO 8601)")
    end_group.add_argument("--reopen", action="store_true", help="Clear the end time")
    edit_parser.add_argument("--reason", help="Stop reason")

    mentions_parser = subparsers.add_parser("mentions", help="Resolve an @-mention fragment")
    mentions_parser.add_argument("fragment", nargs="?", default="", help="Text typed after @")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    config = AppConfig(server_url=args.server) if args.server else AppConfig()
    store = ClientStateStore(config.client_state_file)

    try:
        if args.command == "login":
            session = await login(config, store, args.token)
            print(f"Logged in as {session.user_name} ({session.user_type}, {session.user_id})")

        elif args.command == "logout":
            store.clear()
            print("Logged out.")

        elif args.command == "whoami":
            session = require_session(store)
            print(f"{session.user_name} ({session.user_type}, {session.user_id})")

        elif args.command == "watch":
            session = require_session(store)
            await watch_ticket(config, session, args.ticket_id)

        elif args.command == "set-presence":
            session = require_session(store)
            if session.user_type is not UserType.AGENT:
                print("Only agents have a presence status.", file=sys.stderr)
                sys.exit(1)
            async with aiohttp.ClientSession() as http:
                api = HelpdeskApiClient(config.server_url, http, session.token)
                record = await api.update_presence(session.user_id, args.status)
            print(format_presence(record))

        elif args.command == "log-time":
            session = require_session(store)
            async with aiohttp.ClientSession() as http:
                api = HelpdeskApiClient(config.server_url, http, session.token)
                timer = WorklogTimerController(
                    api, AiohttpBeaconSender(config.server_url, http, session.token), args.ticket_id
                )
                entry = await timer.create_manual(
                    args.agent or session.user_id,
                    args.ticket_id,
                    args.start,
                    args.end,
                    args.description,
                )
            print(f"Logged {entry.duration_formatted} on {entry.ticket_id} (worklog {entry.id})")

        elif args.command == "worklogs":
            session = require_session(store)
            async with aiohttp.ClientSession() as http:
                api = HelpdeskApiClient(config.server_url, http, session.token)
                entries = await api.list_worklogs(ticket_id=args.ticket, agent_id=args.agent)
            if args.json:
                print(json.dumps([e.to_payload() for e in entries], indent=2))
            else:
                for entry in entries:
                    print(
                        f"  {entry.started_at:%Y-%m-%d %H:%M} {entry.ticket_id} "
                        f"{entry.agent_id} {entry.duration_formatted} ({entry.source})"
                    )
                print(f"\n{len(entries)} worklog(s)")

        elif args.command == "edit-worklog":
            session = require_session(store)
            changes = worklog_changes(args)
            if not changes:
                print(
                    "Nothing to change: pass --start, --end, --reopen or --reason.",
                    file=sys.stderr,
                )
                sys.exit(1)
            async with aiohttp.ClientSession() as http:
                api = HelpdeskApiClient(config.server_url, http, session.token)
                entry = await api.update_worklog(args.worklog_id, **changes)
            print(f"Worklog {entry.id} on {entry.ticket_id}: {entry.duration_formatted}")

        elif args.command == "mentions":
            session = require_session(store)
            async with aiohttp.ClientSession() as http:
                api = HelpdeskApiClient(config.server_url, http, session.token)
                admins, agents = await api.fetch_roster()
            for candidate in resolve(build_roster(admins, agents), args.fragment):
                email = f" <{candidate.email}>" if candidate.email else ""
                print(f"  @{candidate.name}{email} ({candidate.type})")

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except (ApiError, WorklogValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cli_main() -> None:
    """Synchronous entry point for the CLI command."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
