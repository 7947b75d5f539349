#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from recoverymatch.app import build_services, create_profile, run_with_retry
from recoverymatch.config import NO_RETRY, ConfigurationError, configure_logging
from recoverymatch.domain.disclosure import Denied
from recoverymatch.domain.errors import MatchEngineError
from recoverymatch.domain.model import ContactSource, RequestStatus, RequestType, Role
from recoverymatch.domain.queries import Direction

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from recoverymatch.app import ConnectionServices
    from recoverymatch.domain.model import ConnectionRequest, MatchGroup


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid id: {value}") from exc


def _parse_score(value: str) -> int:
    try:
        score = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Score must be a whole number, got {value!r}") from exc
    if not 0 <= score <= 100:
        raise argparse.ArgumentTypeError(f"Score must be between 0 and 100, got {score}")
    return score


def _parse_contact(value: str) -> tuple[ContactSource, str | None, str | None]:
    """Parse ``SOURCE:PHONE:EMAIL``; either value may be empty."""

    parts = value.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Contact must be SOURCE:PHONE:EMAIL, got {value!r}")
    source, phone, email = parts
    try:
        contact_source = ContactSource(source)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Unknown contact source: {source}") from exc
    return contact_source, phone or None, email or None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recoverymatch",
        description="Manage connection requests and match groups",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Fail on the first store error instead of retrying with backoff",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    profile = commands.add_parser("profile", help="Seed profiles").add_subparsers(
        dest="action", required=True
    )
    create = profile.add_parser("create", help="Create a profile")
    create.add_argument("--name", required=True, help="Display name")
    create.add_argument(
        "--role",
        dest="roles",
        action="append",
        required=True,
        choices=[role.value for role in Role],
        help="Role held by the profile (repeatable)",
    )
    create.add_argument("--email")
    create.add_argument("--phone")
    create.add_argument(
        "--contact",
        dest="contacts",
        action="append",
        type=_parse_contact,
        default=[],
        help="Role-specific contact record as SOURCE:PHONE:EMAIL (repeatable)",
    )

    request = commands.add_parser("request", help="Connection requests").add_subparsers(
        dest="action", required=True
    )
    submit = request.add_parser("submit", help="Send a connection request")
    submit.add_argument("requester", type=_parse_uuid)
    submit.add_argument("target", type=_parse_uuid)
    submit.add_argument(
        "--type",
        dest="request_type",
        required=True,
        choices=[request_type.value for request_type in RequestType],
    )
    submit.add_argument("--message")
    submit.add_argument("--score", type=_parse_score, help="Upstream match score (0-100)")

    for name, help_text in (
        ("approve", "Approve a pending request as its target"),
        ("cancel", "Withdraw a pending request as its requester"),
    ):
        action = request.add_parser(name, help=help_text)
        action.add_argument("request_id", type=_parse_uuid)
        action.add_argument("--as", dest="actor", type=_parse_uuid, required=True)

    reject = request.add_parser("reject", help="Decline a pending request as its target")
    reject.add_argument("request_id", type=_parse_uuid)
    reject.add_argument("--as", dest="actor", type=_parse_uuid, required=True)
    reject.add_argument("--reason", required=True)

    unmatch = request.add_parser("unmatch", help="End a matched connection")
    unmatch.add_argument("request_id", type=_parse_uuid)
    unmatch.add_argument("--as", dest="actor", type=_parse_uuid, required=True)
    unmatch.add_argument("--reason")

    reconnect = request.add_parser("reconnect", help="Re-open a finished connection")
    reconnect.add_argument("request_id", type=_parse_uuid)
    reconnect.add_argument("--as", dest="actor", type=_parse_uuid, required=True)
    reconnect.add_argument("--message")

    listing = request.add_parser("list", help="List a user's requests")
    listing.add_argument("user", type=_parse_uuid)
    listing.add_argument(
        "--direction",
        default=Direction.ALL.value,
        choices=[direction.value for direction in Direction],
    )
    listing.add_argument("--status", choices=[status.value for status in RequestStatus])

    stats = request.add_parser("stats", help="Show request counts for a user")
    stats.add_argument("user", type=_parse_uuid)

    group = commands.add_parser("group", help="Match groups").add_subparsers(
        dest="action", required=True
    )
    activate = group.add_parser("activate", help="Mark a forming group active")
    activate.add_argument("group_id", type=_parse_uuid)
    activate.add_argument("--as", dest="actor", type=_parse_uuid, required=True)

    contact = group.add_parser("contact", help="Reveal the other member's contact details")
    contact.add_argument("group_id", type=_parse_uuid)
    contact.add_argument("--as", dest="actor", type=_parse_uuid, required=True)

    groups = group.add_parser("list", help="List a user's match groups")
    groups.add_argument("user", type=_parse_uuid)
    groups.add_argument("--live-only", action="store_true", help="Hide ended groups")

    return parser


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    return _build_parser().parse_args(list(argv))


def _format_request(request: ConnectionRequest) -> str:
    group = f" group={request.match_group_id}" if request.match_group_id else ""
    score = f" score={request.match_score}%" if request.match_score is not None else ""
    return (
        f"{request.id} {request.request_type} {request.status} "
        f"{request.requester_id} -> {request.target_id}{score}{group}"
    )


def _format_group(group: MatchGroup) -> str:
    slots = " ".join(f"{slot}={party_id}" for slot, party_id in group.occupants.items())
    return f"{group.id} {group.kind} {group.status} {slots}"


def _profile_command(args: argparse.Namespace, services: ConnectionServices) -> None:
    contacts = {source: (phone, email) for source, phone, email in args.contacts}
    profile = create_profile(
        services.unit_of_work_factory,
        display_name=args.name,
        roles=args.roles,
        email=args.email,
        phone=args.phone,
        contacts=contacts,
    )
    print(profile.id)


def _request_command(args: argparse.Namespace, services: ConnectionServices) -> None:
    lifecycle = services.lifecycle
    queries = services.queries
    match args.action:
        case "submit":
            request = lifecycle.submit(
                args.requester,
                args.target,
                args.request_type,
                args.message,
                match_score=args.score,
            )
            print(_format_request(request))
        case "approve":
            result = lifecycle.approve(args.request_id, args.actor)
            print(_format_request(result.request))
            print(_format_group(result.group))
        case "reject":
            print(_format_request(lifecycle.reject(args.request_id, args.actor, args.reason)))
        case "cancel":
            print(_format_request(lifecycle.cancel(args.request_id, args.actor)))
        case "unmatch":
            result = lifecycle.unmatch(args.request_id, args.actor, args.reason)
            print(_format_request(result.request))
        case "reconnect":
            request = lifecycle.reconnect(args.request_id, args.actor, args.message)
            print(_format_request(request))
        case "list":
            for request in queries.list_requests(
                args.user, direction=args.direction, status=args.status
            ):
                print(_format_request(request))
        case "stats":
            stats = queries.request_statistics(args.user)
            print(f"sent: {stats.total_sent} {dict(stats.sent)}")
            print(f"received: {stats.total_received} {dict(stats.received)}")
            print(f"pending for you: {queries.pending_count(args.user)}")
            print(f"active connections: {stats.active_connections}")
        case _:
            raise ValueError(f"Unknown request action: {args.action}")


def _group_command(args: argparse.Namespace, services: ConnectionServices) -> None:
    match args.action:
        case "activate":
            print(_format_group(services.lifecycle.activate_group(args.group_id, args.actor)))
        case "contact":
            disclosure = services.disclosure.reveal(args.group_id, args.actor)
            if isinstance(disclosure, Denied):
                print(f"Denied: {disclosure.reason}")
                return
            print(f"{disclosure.display_name} ({disclosure.slot})")
            print(f"email: {disclosure.email or '-'}")
            print(f"phone: {disclosure.phone or '-'}")
        case "list":
            for group in services.queries.list_groups(
                args.user, include_ended=not args.live_only
            ):
                print(_format_group(group))
        case _:
            raise ValueError(f"Unknown group action: {args.action}")


COMMANDS: dict[str, Callable[[argparse.Namespace, ConnectionServices], None]] = {
    "profile": _profile_command,
    "request": _request_command,
    "group": _group_command,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        services = build_services()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except MatchEngineError as exc:
        print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
        sys.exit(1)

    command = COMMANDS[parsed_args.command]
    try:
        run_with_retry(
            lambda: command(parsed_args, services),
            policy=NO_RETRY if parsed_args.no_retry else None,
        )
    except MatchEngineError as exc:
        print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
