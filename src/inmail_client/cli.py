"""Command-line interface for the In-Mail client.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

import structlog

from inmail_client import __version__
from inmail_client.app import InMailApp
from inmail_client.browser.content import ContentKind, preview, sender_label
from inmail_client.config import Settings, get_settings
from inmail_client.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    RequestFailedError,
    ValidationError,
)
from inmail_client.models import DeliveryStatus, MessageFilter, MessageFull
from inmail_client.utils import format_size

logger = structlog.get_logger()

SESSION_EXPIRED = "Session expired or missing. Run `inmail login` first."


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inmail", description="In-Mail trap server client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in and store the session")
    login_parser.add_argument("username")
    login_parser.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted)",
    )

    subparsers.add_parser("logout", help="Forget the stored session")
    subparsers.add_parser("whoami", help="Show the logged-in user")
    subparsers.add_parser("dashboard", help="Show SMTP and API connection credentials")
    subparsers.add_parser("users", help="List all users (root only)")

    messages_parser = subparsers.add_parser("messages", help="Browse captured messages")
    messages_sub = messages_parser.add_subparsers(dest="messages_command", required=True)

    list_parser = messages_sub.add_parser("list", help="List one page of messages")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (1-based)")
    list_parser.add_argument("--to", default=None, help="Filter: To contains")
    list_parser.add_argument("--from", dest="from_", default=None, help="Filter: From contains")
    list_parser.add_argument("--subject", default=None, help="Filter: Subject contains")
    list_parser.add_argument(
        "--status",
        choices=[s.value for s in DeliveryStatus],
        default=None,
        help="Filter: delivery status",
    )

    show_parser = messages_sub.add_parser("show", help="Show a message")
    show_parser.add_argument("message_id")
    show_parser.add_argument("--raw", action="store_true", help="Show the raw source")
    show_parser.add_argument("--headers", action="store_true", help="Show the header block")

    delete_parser = messages_sub.add_parser("delete", help="Delete one or more messages")
    delete_parser.add_argument("message_ids", nargs="+")

    download_parser = messages_sub.add_parser("download", help="Download an attachment")
    download_parser.add_argument("message_id")
    download_parser.add_argument("attachment_id")
    download_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory to save into (default: settings download_dir)",
    )

    return parser


def configure_logging(settings: Settings) -> None:
    """Configure structlog to log to stderr at the configured level."""

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


async def _cmd_login(app: InMailApp, args: argparse.Namespace) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    user = await app.login(args.username, password)
    print(f"Logged in as {user.username} ({user.role.value})")
    return 0


def _cmd_logout(app: InMailApp) -> int:
    app.logout()
    print("Logged out")
    return 0


def _cmd_whoami(app: InMailApp) -> int:
    user = app.session.current_user()
    if not app.session.is_authenticated() or user is None:
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1
    print(f"{user.username} ({user.role.value})")
    if user.mailbox_name:
        print(f"Mailbox: {user.mailbox_name}")
    return 0


async def _cmd_dashboard(app: InMailApp) -> int:
    data = await app.open_dashboard()
    if data is None:
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1
    if data.error:
        print(data.error, file=sys.stderr)
        return 1

    if data.config and data.config.version:
        print(f"Server version: {data.config.version}")
    for panel in data.panels:
        print(f"\n[{panel.environment}] {panel.description}")
        print(f"  SMTP host: {panel.smtp_host}")
        print(f"  SMTP port: {panel.smtp_port}")
        print(f"  API URL:   {panel.api_url}")
        print(f"  Web URL:   {panel.web_url}")
        if panel.proxy_url:
            print(f"  Proxy URL: {panel.proxy_url}")
        print(f"  Username:  {panel.username}")
        print(f"  Password:  {panel.password}")
        if panel.mailbox_name:
            print(f"  Mailbox:   {panel.mailbox_name}")
    return 0


async def _cmd_users(app: InMailApp) -> int:
    if not app.session.is_authenticated():
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1

    users = await app.guard(app.client.list_users())
    for user in users:
        state = "active" if user.active else "inactive"
        print(f"{user.id}  {user.username:<20}  {user.role.value:<4}  {state:<8}  {user.email}")
    return 0


async def _cmd_messages_list(app: InMailApp, args: argparse.Namespace) -> int:
    browser = app.browser
    browser.filters = MessageFilter(
        to=args.to, from_=args.from_, subject=args.subject, status=args.status
    )
    if not await app.open_messages():
        if app.browser.error:
            print(app.browser.error, file=sys.stderr)
        else:
            print(SESSION_EXPIRED, file=sys.stderr)
        return 1

    if args.page != browser.page:
        await app.guard(browser.go_to_page(args.page))
        if browser.error:
            print(browser.error, file=sys.stderr)
            return 1

    if not browser.messages:
        print("No messages")
    for message in browser.messages:
        clip = "@" if message.attachments else " "
        received = message.received_at.strftime("%b %d %H:%M")
        print(
            f"{message.id}  {received}  {clip} {message.status.value:<9}  "
            f"{sender_label(message):<20.20}  {message.subject or '(No Subject)'}"
        )
        if isinstance(message, MessageFull):
            print(f"    {preview(message)}")
    total = browser.total
    print(
        f"\nPage {browser.page} of {max(browser.total_pages, 1)} "
        f"({total} message{'s' if total != 1 else ''})"
    )
    hints = []
    if browser.has_previous:
        hints.append(f"previous: --page {browser.page - 1}")
    if browser.has_next:
        hints.append(f"next: --page {browser.page + 1}")
    if hints:
        print("  ".join(hints))
    return 0


def _print_message(app: InMailApp, message: MessageFull) -> None:
    print(f"Subject: {message.subject or '(No Subject)'}")
    print(f"From:    {message.from_}")
    print(f"To:      {message.to}")
    if message.cc:
        print(f"Cc:      {message.cc}")
    print(f"Date:    {message.received_at.isoformat()}")
    print(f"Status:  {message.status.value}")
    if message.failure_reason:
        print(f"Reason:  {message.failure_reason}")

    headers = app.browser.headers()
    if headers:
        print("\n" + headers.rstrip())

    content = app.browser.content()
    if content is not None:
        label = {ContentKind.HTML: "html", ContentKind.RAW: "raw source"}.get(content.kind)
        print(f"\n--- {label} ---" if label else "")
        print(content.content)

    if message.attachments and not app.browser.view.show_raw:
        count = len(message.attachments)
        print(f"\n{count} Attachment{'s' if count != 1 else ''}:")
        for attachment in message.attachments:
            print(f"  {attachment.id}  {attachment.filename}  ({format_size(attachment.size)})")


async def _cmd_messages_show(app: InMailApp, args: argparse.Namespace) -> int:
    if not app.session.is_authenticated():
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1

    browser = app.browser
    if not await app.guard(browser.select_id(args.message_id)):
        print(browser.error, file=sys.stderr)
        return 1
    if args.raw:
        browser.view.toggle_raw()
    if args.headers:
        browser.view.toggle_headers()

    assert isinstance(browser.selected, MessageFull)
    _print_message(app, browser.selected)
    return 0


async def _cmd_messages_delete(app: InMailApp, args: argparse.Namespace) -> int:
    if not app.session.is_authenticated():
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1

    await app.open_messages()
    browser = app.browser
    ids: list[str] = args.message_ids
    if len(ids) == 1:
        ok = await app.guard(browser.remove(ids[0]))
    else:
        ok = await app.guard(browser.remove_many(ids))
    if not ok:
        print(browser.error, file=sys.stderr)
        return 1
    print(f"Deleted {len(ids)} message{'s' if len(ids) != 1 else ''}; {browser.total} remaining")
    return 0


async def _cmd_messages_download(app: InMailApp, args: argparse.Namespace) -> int:
    if not app.session.is_authenticated():
        print(SESSION_EXPIRED, file=sys.stderr)
        return 1

    browser = app.browser
    if not await app.guard(browser.select_id(args.message_id)):
        print(browser.error, file=sys.stderr)
        return 1

    assert isinstance(browser.selected, MessageFull)
    filename = args.attachment_id
    for attachment in browser.selected.attachments:
        if attachment.id == args.attachment_id:
            filename = attachment.filename
            break

    path = await app.download_attachment(
        args.message_id, args.attachment_id, filename, directory=args.output_dir
    )
    if path is None:
        for notice in app.notices:
            print(notice, file=sys.stderr)
        return 1
    print(f"Saved {path}")
    return 0


async def _run(settings: Settings, args: argparse.Namespace) -> int:
    async with InMailApp(settings) as app:
        try:
            if args.command == "login":
                return await _cmd_login(app, args)
            if args.command == "logout":
                return _cmd_logout(app)
            if args.command == "whoami":
                return _cmd_whoami(app)
            if args.command == "dashboard":
                return await _cmd_dashboard(app)
            if args.command == "users":
                return await _cmd_users(app)
            if args.command == "messages":
                if args.messages_command == "list":
                    return await _cmd_messages_list(app, args)
                if args.messages_command == "show":
                    return await _cmd_messages_show(app, args)
                if args.messages_command == "delete":
                    return await _cmd_messages_delete(app, args)
                if args.messages_command == "download":
                    return await _cmd_messages_download(app, args)
        except AuthExpiredError:
            print(SESSION_EXPIRED, file=sys.stderr)
            return 1
        except (RequestFailedError, ValidationError) as exc:
            message = getattr(exc, "server_message", None) or str(exc)
            print(message, file=sys.stderr)
            return 1

    logger.error("unknown_command", command=args.command)
    return 2


def main(args: list[str] | None = None) -> int:
    """Main entry point for the In-Mail CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()
    configure_logging(settings)

    logger.debug("inmail_cli_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)
    try:
        return asyncio.run(_run(settings, parsed))
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
