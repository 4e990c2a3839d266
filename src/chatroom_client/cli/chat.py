"""CLI: chatroom chat, chatroom send"""

import asyncio
from typing import Optional

import click
from rich.console import Console

from chatroom_client.cli.users import stats_table
from chatroom_client.errors import ChatroomError
from chatroom_client.models.message import Message

console = Console()


def _get_client(base_url: Optional[str] = None):
    from chatroom_client.cli.main import _get_client
    return _get_client(base_url)


def _username(override: Optional[str] = None) -> str:
    from chatroom_client.cli.main import _username
    return _username(override)


def _run(coro):
    from chatroom_client.cli.main import _run
    return _run(coro)


def _render(message: Message, me: Optional[str]) -> None:
    who = "You" if message.sender_identity == me else (message.sender_identity or "?")
    room = f"[dim]#{message.room}[/dim] " if message.room else ""
    if message.provisional:
        console.print(f"{room}[blue]{who}:[/blue] {message.body} [dim](sending)[/dim]")
    elif message.sender_identity == me:
        console.print(f"{room}[blue]{who}:[/blue] {message.body} [green]✓[/green]")
    else:
        console.print(f"{room}[green]{who}:[/green] {message.body}")


HELP = """\
/help         show this help
/room NAME    switch room (no name: global)
/users        who is online
/stats        server statistics
/quit         leave
"""


async def _show_users(client) -> None:
    result = await client.server.users()
    names = ", ".join(u.username for u in result.users) or "nobody"
    console.print(f"[dim]Online ({len(result.users)}): {names}[/dim]")


async def _show_stats(client) -> None:
    console.print(stats_table(await client.server.stats()))


async def _command(client, line: str) -> bool:
    """Run a slash command. Returns False when the session should end."""
    name, _, arg = line.strip().partition(" ")
    if name in ("/quit", "/exit"):
        return False
    try:
        if name == "/room":
            client.join_room(arg.strip())
            console.print(f"[dim]Room: {client.store.room or 'global'}[/dim]")
        elif name == "/users":
            await _show_users(client)
        elif name == "/stats":
            await _show_stats(client)
        else:
            console.print(HELP, markup=False)
    except ChatroomError as e:
        console.print(f"[yellow]{e}[/yellow]")
    return True


async def _login(client, username: str, ask_password: bool) -> bool:
    password = click.prompt("Password", hide_input=True) if ask_password else None
    try:
        with console.status("Connecting..."):
            await client.login(username, password)
    except ChatroomError as e:
        console.print(f"[red]{e}[/red]")
        return False
    return True


@click.command("chat")
@click.option("-u", "--username", default=None)
@click.option("--room", default="", help="Room to join (default: global)")
@click.option("--base-url", default=None)
@click.option("--no-password", is_flag=True, help="Skip the HTTP login step")
def chat_cmd(username: Optional[str], room: str, base_url: Optional[str], no_password: bool):
    """Interactive chat."""

    async def _chat():
        client = _get_client(base_url)
        name = _username(username)
        if not await _login(client, name, not no_password):
            await client.aclose()
            raise SystemExit(1)
        if room:
            client.join_room(room)
        console.print(f"[cyan]Connected as {client.identity}. /help for commands.[/cyan]\n")

        async def _printer():
            async for message in client.subscribe():
                _render(message, client.identity)

        printer = asyncio.create_task(_printer())
        loop = asyncio.get_running_loop()
        try:
            while client.connected:
                line = await loop.run_in_executor(None, input)
                if line.startswith("/"):
                    if not await _command(client, line):
                        break
                    continue
                try:
                    client.send(line)
                except ChatroomError as e:
                    console.print(f"[yellow]{e}[/yellow]")
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            printer.cancel()
            error = client.last_error
            await client.aclose()
            if error:
                console.print(f"[red]{error}[/red]")

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("-u", "--username", default=None)
@click.option("--room", default="")
@click.option("--base-url", default=None)
@click.option("--no-password", is_flag=True)
@click.option("--wait", default=2.0, type=float, help="Seconds to wait for the server echo")
def send_cmd(message: str, username: Optional[str], room: str, base_url: Optional[str], no_password: bool, wait: float):
    """Send a one-shot message."""

    async def _send():
        client = _get_client(base_url)
        if not await _login(client, _username(username), not no_password):
            await client.aclose()
            raise SystemExit(1)
        try:
            if room:
                client.join_room(room)
            sent = client.send(message)
            await client.flush()
            deadline = asyncio.get_running_loop().time() + wait
            while client.pending(0) and asyncio.get_running_loop().time() < deadline:
                await asyncio.sleep(0.05)
            confirmed = not any(m.correlation_id == sent.correlation_id for m in client.pending(0))
            if confirmed:
                console.print("[green]Sent ✓[/green]")
            else:
                console.print("[yellow]Sent (no echo from server yet)[/yellow]")
        except ChatroomError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await client.aclose()

    _run(_send())
