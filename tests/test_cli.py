"""CLI commands that do not need a live server."""

import asyncio
import json

import httpx
import pytest
from click.testing import CliRunner

from chatroom_client.cli import chat as cli_chat
from chatroom_client.cli import main as cli_main
from chatroom_client.client import AsyncChatroomClient
from chatroom_client.transport.http import HttpClient


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "chatroom" / "config.json"
    monkeypatch.setattr(cli_main, "CONFIG_FILE", path)
    monkeypatch.delenv(cli_main.BASE_URL_ENV, raising=False)
    return path


@pytest.fixture
def fake_server(monkeypatch):
    def handler(request):
        if request.url.path == "/users":
            return httpx.Response(200, json={"success": True, "users": [{"username": "bob", "client_type": "web"}]})
        if request.url.path == "/messages":
            return httpx.Response(200, json={
                "success": True,
                "messages": [{"username": "bob", "content": "hi", "timestamp": "10:00:00", "room_id": "dev"}],
                "next_since": 4,
            })
        if request.url.path == "/login":
            body = json.loads(request.content)
            ok = body["password"] == "pw"
            return httpx.Response(200, json={"success": ok, "username": body["username"]} if ok else
                                  {"success": False, "error": "Invalid username or password"})
        if request.url.path == "/metrics":
            return httpx.Response(200, text='chatroom_client_versions{version="1.0"} 2\n')
        return httpx.Response(404, json={"success": False, "error": "Not found"})

    def _get_client(base_url=None):
        url = cli_main._base_url(base_url)
        http = HttpClient(base_url=url, transport=httpx.MockTransport(handler))
        return AsyncChatroomClient(base_url=url, http=http)

    monkeypatch.setattr(cli_main, "_get_client", _get_client)


def test_status_when_logged_out(config_file):
    result = CliRunner().invoke(cli_main.main, ["status"])
    assert result.exit_code == 0
    assert "Not logged in" in result.output


def test_status_and_logout(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"username": "alice", "base_url": "http://chat.test"}))
    runner = CliRunner()

    result = runner.invoke(cli_main.main, ["status"])
    assert "alice" in result.output
    assert "http://chat.test" in result.output

    result = runner.invoke(cli_main.main, ["logout"])
    assert result.exit_code == 0
    assert json.loads(config_file.read_text()) == {}


def test_base_url_precedence(config_file, monkeypatch):
    assert cli_main._base_url() == cli_main.DEFAULT_BASE_URL
    cli_main._save_config({"base_url": "http://from-config"})
    assert cli_main._base_url() == "http://from-config"
    monkeypatch.setenv(cli_main.BASE_URL_ENV, "http://from-env")
    assert cli_main._base_url() == "http://from-env"
    assert cli_main._base_url("http://flag") == "http://flag"


def test_login_saves_username_not_password(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["login", "--base-url", "http://chat.test"], input="alice\npw\n")
    assert result.exit_code == 0, result.output
    saved = json.loads(config_file.read_text())
    assert saved == {"username": "alice", "base_url": "http://chat.test"}


def test_login_failure_exits_nonzero(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["login"], input="alice\nbad\n")
    assert result.exit_code == 1
    assert "Invalid username or password" in result.output
    assert not config_file.exists()


def test_users_json(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["users", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["users"][0]["username"] == "bob"


def test_history(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["history", "--since", "2"])
    assert result.exit_code == 0, result.output
    assert "bob" in result.output
    assert "next --since 4" in result.output


def test_send_requires_username(config_file):
    result = CliRunner().invoke(cli_main.main, ["send", "hello"])
    assert result.exit_code == 1
    assert "No username" in result.output


def test_stats_json(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["stats", "--json"])
    assert result.exit_code == 0, result.output
    samples = json.loads(result.output)["samples"]
    assert samples == [{"name": "chatroom_client_versions", "labels": {"version": "1.0"}, "value": 2.0}]


def test_stats_table(config_file, fake_server):
    result = CliRunner().invoke(cli_main.main, ["stats"])
    assert result.exit_code == 0, result.output
    assert "chatroom_client_versions" in result.output
    assert "version=1.0" in result.output


class TestChatCommands:
    @staticmethod
    def run(line):
        async def _go():
            client = cli_main._get_client("http://chat.test")
            try:
                return await cli_chat._command(client, line)
            finally:
                await client.aclose()

        return asyncio.run(_go())

    def test_quit_ends_session(self, fake_server):
        assert self.run("/quit") is False
        assert self.run("/exit") is False

    def test_users(self, fake_server, capsys):
        assert self.run("/users") is True
        assert "Online (1): bob" in capsys.readouterr().out

    def test_stats(self, fake_server, capsys):
        assert self.run("/stats") is True
        assert "chatroom_client_versions" in capsys.readouterr().out

    def test_room_without_session_is_reported(self, fake_server, capsys):
        assert self.run("/room dev") is True
        assert "connect" in capsys.readouterr().out.lower()

    def test_unknown_prints_help(self, fake_server, capsys):
        assert self.run("/what") is True
        assert "/users" in capsys.readouterr().out
