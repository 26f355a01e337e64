"""Adsora CLI: agent sessions for ad, Slack and Drive work.

Usage:
    adsora session create <user-id>          # Provision + equip a runner
    adsora session close <session-id>        # Mark a session closed
    adsora sessions <user-id> [--status S]   # List a user's sessions
    adsora send <session-id> "pause my ads"  # Route one message
    adsora chat <user-id>                    # Interactive chat (new session)
    adsora chat <user-id> -s <session-id>    # Interactive chat (resume)
    adsora tools <session-id>                # Tools exposed by the runner
    adsora route "upload this file"          # Show which tool a message hits
    adsora timeline                          # Session event timeline
    adsora config <key>=<value>              # Set configuration
"""

import asyncio
import datetime
import json
import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adsora.config import AdsoraConfig, ensure_adsora_home
from adsora.conversation import Conversation
from adsora.errors import AdsoraError
from adsora.manager import SessionManager
from adsora.router import classify
from adsora.sessions import SessionStatus, SessionStore

console = Console()

STATUS_COLORS = {
    "provisioning": "yellow",
    "active": "green",
    "closed": "dim",
    "error": "red",
}


def _run_async(coro):
    """Run async function from sync context."""
    return asyncio.run(coro)


def _manager() -> SessionManager:
    ensure_adsora_home()
    return SessionManager.from_config(AdsoraConfig.load())


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/] {error}")
    sys.exit(1)


def _fmt_ts(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose):
    """Adsora: agent sessions for Meta ads, Slack and Google Drive."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


# --- Sessions ---


@cli.group()
def session():
    """Create or close agent sessions."""


@session.command("create")
@click.argument("user_id")
def session_create(user_id):
    """Provision a runner for USER_ID and configure its capabilities."""
    manager = _manager()
    with console.status("Provisioning runner..."):
        try:
            created = _run_async(manager.create_session(user_id))
        except (AdsoraError, ValueError) as e:
            _fail(e)

    caps = ", ".join(created.capabilities or []) or "none"
    console.print(Panel(
        f"Session: [bold]{created.id}[/]\n"
        f"Runner: {created.runner_url}\n"
        f"Status: [green]{created.status.value}[/]\n"
        f"Capabilities: {caps}",
        title="Session created",
        border_style="green",
    ))


@session.command("close")
@click.argument("session_id")
def session_close(session_id):
    """Mark SESSION_ID closed."""
    manager = _manager()
    try:
        closed = manager.close_session(session_id)
    except AdsoraError as e:
        _fail(e)
    console.print(f"[green]Session {closed.id} closed[/]")


@cli.command()
@click.argument("user_id")
@click.option(
    "--status",
    type=click.Choice([s.value for s in SessionStatus]),
    default=None,
    help="Only sessions in this state",
)
@click.option("--json", "as_json", is_flag=True, help="Print rows as JSON")
def sessions(user_id, status, as_json):
    """List sessions for USER_ID, newest first."""
    manager = _manager()
    rows = manager.list_sessions(user_id, status=SessionStatus(status) if status else None)
    if as_json:
        console.print_json(json.dumps([s.to_dict() for s in rows]))
        return
    if not rows:
        console.print(f"[dim]No sessions for {user_id}[/]")
        return

    table = Table(title=f"Sessions for {user_id}")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Runner")
    table.add_column("Capabilities")
    table.add_column("Created")
    for s in rows:
        color = STATUS_COLORS.get(s.status.value, "white")
        table.add_row(
            s.id,
            f"[{color}]{s.status.value}[/]",
            s.runner_url or "-",
            ", ".join(s.capabilities or []) or "-",
            _fmt_ts(s.created_at),
        )
    console.print(table)


# --- Chat ---


@cli.command()
@click.argument("session_id")
@click.argument("text", nargs=-1, required=True)
def send(session_id, text):
    """Send one message to SESSION_ID and print the reply."""
    manager = _manager()
    try:
        reply = _run_async(manager.send_message(session_id, " ".join(text)))
    except (AdsoraError, ValueError) as e:
        _fail(e)
    console.print(reply)


@cli.command()
@click.argument("user_id")
@click.option("--session", "-s", "session_id", default=None, help="Resume an existing session")
def chat(user_id, session_id):
    """Interactive chat for USER_ID. Empty line or 'exit' quits."""
    manager = _manager()
    conversation = Conversation(manager, user_id, session_id=session_id)

    async def _loop():
        console.print(f"[cyan]assistant>[/] {conversation.messages[0].content}")
        with console.status("Connecting to AI agent..."):
            ready = await conversation.start()
        console.print(f"[cyan]assistant>[/] {conversation.messages[-1].content}")
        if ready is None:
            return False

        while True:
            text = await asyncio.to_thread(console.input, "[bold]you>[/] ")
            if not text.strip() or text.strip().lower() in ("exit", "quit"):
                return True
            with console.status("Processing..."):
                reply = await conversation.ask(text)
            console.print(f"[cyan]assistant>[/] {reply}")

    try:
        ok = _run_async(_loop())
    except (EOFError, KeyboardInterrupt):
        ok = True
    except AdsoraError as e:
        _fail(e)
    if not ok:
        sys.exit(1)


@cli.command()
@click.argument("session_id")
def tools(session_id):
    """List the tools SESSION_ID's runner exposes."""
    manager = _manager()
    try:
        listed = _run_async(manager.list_tools(session_id))
    except AdsoraError as e:
        _fail(e)

    if not listed:
        console.print("[dim]Runner exposes no tools[/]")
        return
    table = Table(title="Runner tools")
    table.add_column("Name")
    table.add_column("Description")
    for t in listed:
        table.add_row(str(t.get("name", "?")), str(t.get("description", ""))[:80])
    console.print(table)


@cli.command()
@click.argument("text", nargs=-1, required=True)
@click.option("--user", "-u", "user_id", default=None, help="User id to attach")
def route(text, user_id):
    """Show which tool a message would be routed to (no network)."""
    intent = classify(" ".join(text), user_id)
    console.print(f"Tool: [bold]{intent.name}[/]")
    console.print_json(json.dumps(intent.params))


# --- Observability ---


@cli.command()
@click.option("--session", "-s", "session_id", default=None, help="Filter by session")
@click.option("--limit", "-n", default=20, help="Number of events to show")
@click.option("--type", "-T", "event_type", default=None, help="Filter by event type")
def timeline(session_id, limit, event_type):
    """Show session lifecycle events."""
    ensure_adsora_home()
    events = SessionStore().get_timeline(
        session_id=session_id, limit=limit, event_type=event_type
    )
    if not events:
        console.print("[dim]No events recorded[/]")
        return

    table = Table(title="Session Timeline")
    table.add_column("Time", style="dim")
    table.add_column("Type")
    table.add_column("Session", style="dim")
    table.add_column("Summary")
    for e in reversed(events):
        color = "red" if "failed" in e["event_type"] or "error" in e["event_type"] else "white"
        table.add_row(
            _fmt_ts(e["timestamp"]),
            f"[{color}]{e['event_type']}[/]",
            e["session_id"] or "-",
            e["summary"][:80],
        )
    console.print(table)


@cli.command()
@click.argument("key_value", nargs=-1)
def config(key_value):
    """View or set Adsora configuration.

    Examples:
        adsora config                                      # show all
        adsora config orchestrator.deploy_url=http://...   # custom orchestrator
        adsora config session.ready_timeout=60
        adsora config credentials.META_ACCESS_TOKEN=...
    """
    cfg = AdsoraConfig.load()
    if not key_value:
        console.print_json(json.dumps({
            "orchestrator": {
                "deploy_url": cfg.orchestrator.deploy_url,
                "provision_timeout": cfg.orchestrator.provision_timeout,
            },
            "runner": {
                "configure_timeout": cfg.runner.configure_timeout,
                "tool_call_timeout": cfg.runner.tool_call_timeout,
            },
            "session": {
                "ready_timeout": cfg.session.ready_timeout,
                "poll_interval": cfg.session.poll_interval,
            },
            "credentials": sorted(cfg.capabilities.credentials),
        }))
        return

    kv = " ".join(key_value)
    if "=" not in kv:
        console.print("[yellow]Usage: adsora config key=value[/]")
        return

    key, value = (part.strip() for part in kv.split("=", 1))
    if key == "orchestrator.deploy_url":
        cfg.orchestrator.deploy_url = value
    elif key == "orchestrator.provision_timeout":
        cfg.orchestrator.provision_timeout = float(value)
    elif key == "runner.configure_timeout":
        cfg.runner.configure_timeout = float(value)
    elif key == "runner.tool_call_timeout":
        cfg.runner.tool_call_timeout = float(value)
    elif key == "session.ready_timeout":
        cfg.session.ready_timeout = float(value)
    elif key == "session.poll_interval":
        cfg.session.poll_interval = float(value)
    elif key.startswith("credentials."):
        cfg.capabilities.set_credential(key.split(".", 1)[1], value)
    else:
        console.print(f"[red]Unknown config key: {key}[/]")
        return

    cfg.save()
    console.print(f"[green]Set {key}[/]")


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
