# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for the SES/SNS mock.

Usage:
    ses-mock serve --port 3000 --webhook-url http://localhost:4000/api/ses-events
    ses-mock patterns
    ses-mock emails --url http://localhost:3000
    ses-mock notifications --url http://localhost:3000 --json

Example:
    $ ses-mock serve --config ./config.ini --step-seconds 0.2

    $ ses-mock patterns --json
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Optional

import click
import requests
from rich.console import Console
from rich.table import Table

from ses_mock import __version__
from ses_mock.client import MockClient
from ses_mock.config_loader import load_settings
from ses_mock.patterns import DEFAULT_EVENTS, EVENT_PATTERNS

console = Console()
err_console = Console(stderr=True)

DEFAULT_URL = "http://localhost:3000"


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def _client_or_exit(url: str) -> MockClient:
    client = MockClient(url)
    if not client.health():
        print_error(f"No SES mock answering at {url}")
        sys.exit(1)
    return client


@click.group()
@click.version_option(__version__, prog_name="ses-mock")
def main() -> None:
    """ses-mock CLI - Local Amazon SES v2 and SNS stand-in.

    Examples:

        ses-mock serve -p 3000            # Start the mock

        ses-mock patterns                 # Show recipient test addresses

        ses-mock emails                   # List emails sent to a running mock
    """
    pass


@main.command("serve")
@click.option("--host", default=None, help="Interface to bind (default: 0.0.0.0).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default: 3000).")
@click.option("--webhook-url", default=None, help="Callback URL for SES notifications.")
@click.option("--step-seconds", type=float, default=None, help="Delay between events of one recipient.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="INI configuration file (default: $SES_MOCK_CONFIG or config.ini).",
)
@click.option("--reload", is_flag=True, help="Restart on code changes (development).")
def serve(
    host: Optional[str],
    port: Optional[int],
    webhook_url: Optional[str],
    step_seconds: Optional[float],
    config_path: Optional[str],
    reload: bool,
) -> None:
    """Run the mock HTTP server.

    Command line options override the configuration file, which overrides
    environment variables.
    """
    import uvicorn

    try:
        settings = load_settings(config_path).with_overrides(
            host=host, port=port, webhook_url=webhook_url, step_seconds=step_seconds
        )
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)

    console.print(f"[bold]SES mock[/bold] on http://{settings.host}:{settings.port}")
    console.print(f"  Webhook: {settings.webhook_url or '[dim]disabled[/dim]'}")

    if reload:
        # The reloader imports ses_mock.server in a child process: hand it the
        # resolved settings through the environment and an empty config file.
        os.environ.update(settings.to_env())
        os.environ["SES_MOCK_CONFIG"] = os.devnull
        uvicorn.run(
            "ses_mock.server:app",
            host=settings.host,
            port=settings.port,
            reload=True,
            log_config=None,
        )
        return

    from ses_mock.bootstrap import build_app

    uvicorn.run(build_app(settings), host=settings.host, port=settings.port, log_config=None)


@main.command("patterns")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def patterns(as_json: bool) -> None:
    """Show which test recipients trigger which SES events."""
    rows = {address: [e.value for e in events] for address, events in EVENT_PATTERNS.items()}
    if as_json:
        print_json({"patterns": rows, "default": [e.value for e in DEFAULT_EVENTS]})
        return

    table = Table(title="Recipient Patterns")
    table.add_column("Recipient", style="cyan")
    table.add_column("Events")
    for address, events in rows.items():
        table.add_row(address, " → ".join(events))
    table.add_row("[dim]any other[/dim]", " → ".join(e.value for e in DEFAULT_EVENTS))
    console.print(table)


@main.command("emails")
@click.option("--url", default=DEFAULT_URL, show_default=True, help="Base URL of a running mock.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def emails(url: str, as_json: bool) -> None:
    """List the emails a running mock has accepted."""
    client = _client_or_exit(url)
    try:
        sent = client.emails()
    except requests.RequestException as exc:
        print_error(str(exc))
        sys.exit(1)

    if as_json:
        print_json([email.request for email in sent])
        return
    if not sent:
        console.print("[dim]No emails sent.[/dim]")
        return

    table = Table(title=f"Sent Emails ({len(sent)})")
    table.add_column("MessageId", style="cyan")
    table.add_column("To")
    table.add_column("Kind")
    for email in sent:
        table.add_row(email.message_id, ", ".join(email.to) or "-", "raw" if email.raw else "simple")
    console.print(table)


@main.command("notifications")
@click.option("--url", default=DEFAULT_URL, show_default=True, help="Base URL of a running mock.")
@click.option("--message-id", default=None, help="Only attempts for this MessageId.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def notifications(url: str, message_id: Optional[str], as_json: bool) -> None:
    """Show the notification delivery log of a running mock."""
    client = _client_or_exit(url)
    try:
        records = client.notifications(message_id)
    except requests.RequestException as exc:
        print_error(str(exc))
        sys.exit(1)

    if as_json:
        print_json(records)
        return
    if not records:
        console.print("[dim]No notifications attempted.[/dim]")
        return

    styles = {"delivered": "green", "failed": "red", "skipped": "dim"}
    table = Table(title="Notification Deliveries")
    table.add_column("Attempted", style="dim")
    table.add_column("Recipient", style="cyan")
    table.add_column("Event")
    table.add_column("Outcome")
    table.add_column("Status", justify="right")
    for rec in records:
        style = styles.get(rec.get("outcome"), "white")
        table.add_row(
            rec.get("attempted_at", ""),
            rec.get("recipient", ""),
            rec.get("event_type", ""),
            f"[{style}]{rec.get('outcome')}[/{style}]",
            str(rec.get("status") or "-"),
        )
    console.print(table)


if __name__ == "__main__":
    main()
