"""CLI: chatroom users|history|stats"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from chatroom_client.models.server import ServerStats

console = Console()


def _get_client(base_url: Optional[str] = None):
    from chatroom_client.cli.main import _get_client
    return _get_client(base_url)


def _run(coro):
    from chatroom_client.cli.main import _run
    return _run(coro)


@click.command("users")
@click.option("--base-url", default=None)
@click.option("--json-output", "--json", is_flag=True)
def users(base_url, json_output):
    """List users who are online."""

    async def _users():
        client = _get_client(base_url)
        try:
            result = await client.server.users()
        finally:
            await client.aclose()
        if json_output:
            click.echo(result.model_dump_json(indent=2))
            return
        table = Table(title=f"Online ({len(result.users)})")
        table.add_column("User", style="bold")
        table.add_column("Client")
        table.add_column("Online (s)", justify="right")
        table.add_column("Idle (s)", justify="right")
        for u in result.users:
            table.add_row(u.username, u.client_type or "", str(u.online_seconds), str(u.idle_seconds))
        console.print(table)

    _run(_users())


@click.command("history")
@click.option("--base-url", default=None)
@click.option("--since", default=0, type=int, help="Only messages after this id")
@click.option("--username", default=None, help="Include private messages for this user")
@click.option("--json-output", "--json", is_flag=True)
def history(base_url, since, username, json_output):
    """Show stored messages."""

    async def _history():
        client = _get_client(base_url)
        try:
            page = await client.server.messages(since=since, username=username)
        finally:
            await client.aclose()
        if json_output:
            click.echo(json.dumps(page.model_dump(), indent=2))
            return
        for m in page.messages:
            room = f"[dim]#{m.room_id}[/dim] " if m.room_id else ""
            console.print(f"[dim]{m.timestamp or ''}[/dim] {room}[cyan]{m.username}[/cyan]: {m.content}")
        console.print(f"[dim]next --since {page.next_since}[/dim]")

    _run(_history())


def stats_table(result: ServerStats) -> Table:
    table = Table(title="Server stats")
    table.add_column("Metric", style="bold")
    table.add_column("Labels")
    table.add_column("Value", justify="right")
    for s in result.samples:
        table.add_row(s.name, ",".join(f"{k}={v}" for k, v in s.labels.items()), f"{s.value:g}")
    return table


@click.command("stats")
@click.option("--base-url", default=None)
@click.option("--json-output", "--json", is_flag=True)
def stats(base_url, json_output):
    """Show server statistics (from /metrics)."""

    async def _stats():
        client = _get_client(base_url)
        try:
            result = await client.server.stats()
        finally:
            await client.aclose()
        if json_output:
            click.echo(result.model_dump_json(indent=2))
            return
        console.print(stats_table(result))

    _run(_stats())
