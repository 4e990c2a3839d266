"""
Chatroom CLI — `chatroom` command.

Commands:
  chatroom register              Create an account
  chatroom login                 Remember server + username
  chatroom chat [--room ROOM]    Interactive chat session
  chatroom send <message>        One-shot message
  chatroom users                 Who is online
  chatroom history               Stored messages
  chatroom stats                 Server statistics
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install chatroom-client[cli]")

from chatroom_client.client import AsyncChatroomClient
from chatroom_client.transport.http import DEFAULT_BASE_URL

console = Console()
CONFIG_FILE = Path.home() / ".chatroom" / "config.json"
BASE_URL_ENV = "CHATROOM_BASE_URL"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _base_url(override: Optional[str] = None) -> str:
    return override or os.environ.get(BASE_URL_ENV) or _load_config().get("base_url", DEFAULT_BASE_URL)


def _get_client(base_url: Optional[str] = None) -> AsyncChatroomClient:
    return AsyncChatroomClient(base_url=_base_url(base_url))


def _username(override: Optional[str] = None) -> str:
    username = override or _load_config().get("username")
    if not username:
        console.print("[red]No username. Run `chatroom login` or pass --username.[/red]")
        raise SystemExit(1)
    return username


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol activity")
def main(verbose: bool):
    """Chatroom CLI — talk to a chat server from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# Register subcommands from separate modules
from chatroom_client.cli.auth import login, logout, register, status
from chatroom_client.cli.chat import chat_cmd, send_cmd
from chatroom_client.cli.users import history, stats, users

main.add_command(register)
main.add_command(login)
main.add_command(logout)
main.add_command(status)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(users)
main.add_command(history)
main.add_command(stats)


if __name__ == "__main__":
    main()
