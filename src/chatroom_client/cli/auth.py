"""CLI: chatroom register|login|logout|status"""

from typing import Optional

import click
from rich.console import Console

from chatroom_client.errors import AuthError

console = Console()


def _load_config() -> dict:
    from chatroom_client.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from chatroom_client.cli.main import _save_config
    _save_config(cfg)


def _get_client(base_url: Optional[str] = None):
    from chatroom_client.cli.main import _get_client
    return _get_client(base_url)


def _run(coro):
    from chatroom_client.cli.main import _run
    return _run(coro)


@click.command("register")
@click.option("--base-url", default=None, help="Chat server URL")
@click.option("--email", default=None)
def register(base_url: Optional[str], email: Optional[str]):
    """Create an account."""

    async def _register():
        client = _get_client(base_url)
        username = click.prompt("Username")
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)
        try:
            with console.status("Registering..."):
                await client.auth.register(username, password, email=email)
        except AuthError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await client.aclose()
        console.print(f"[green]Registered {username}. Run `chatroom login` next.[/green]")

    _run(_register())


@click.command("login")
@click.option("--base-url", default=None, help="Chat server URL")
def login(base_url: Optional[str]):
    """Check credentials and remember the server and username."""

    async def _login():
        client = _get_client(base_url)
        username = click.prompt("Username")
        password = click.prompt("Password", hide_input=True)
        try:
            with console.status("Logging in..."):
                result = await client.auth.login(username, password)
        except AuthError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await client.aclose()
        console.print(f"[green]Logged in as {result.username or username}[/green]")
        _save_config({**_load_config(), "username": username, "base_url": client.http.base_url})
        console.print("[dim]Saved to ~/.chatroom/config.json (password is never stored)[/dim]")

    _run(_login())


@click.command("status")
def status():
    """Show the remembered server and username."""
    cfg = _load_config()
    if cfg.get("username"):
        console.print(f"[green]{cfg['username']}[/green] @ {cfg.get('base_url', 'default server')}")
    else:
        console.print("[yellow]Not logged in. Run `chatroom login`.[/yellow]")


@click.command("logout")
def logout():
    """Forget the remembered username."""
    _save_config({})
    console.print("[green]Logged out.[/green]")
