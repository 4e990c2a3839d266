"""Shared fixtures: an in-memory transport standing in for the WebSocket."""

import asyncio
import json
from typing import Any, Optional, Union

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK


class FakeTransport:
    """Scriptable transport. Frames pushed by the test are returned by recv()."""

    def __init__(self) -> None:
        self.url: Optional[str] = None
        self.sent: list[str] = []
        self.closed = False
        self.close_calls = 0
        self.login_reply: Optional[dict[str, Any]] = None
        self.fail_send: Optional[BaseException] = None
        self.send_delay = 0.0
        self._inbox: asyncio.Queue[Union[str, bytes, BaseException]] = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.closed:
            raise ConnectionClosedOK(None, None)
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append(message)
        if self.login_reply is not None and json.loads(message).get("type") == "login":
            self.push(self.login_reply)

    async def recv(self) -> Union[str, bytes]:
        item = await self._inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(ConnectionClosedOK(None, None))

    def push(self, frame: Union[dict[str, Any], str, bytes]) -> None:
        self._inbox.put_nowait(json.dumps(frame) if isinstance(frame, dict) else frame)

    def reopen(self) -> None:
        """Make the same fake usable for a second connection."""
        self.closed = False
        self._inbox = asyncio.Queue()

    def drop(self) -> None:
        """Simulate the server going away."""
        self._inbox.put_nowait(ConnectionClosedError(None, None))

    def fail(self, error: BaseException) -> None:
        """Make the next recv() raise ``error``."""
        self._inbox.put_nowait(error)

    def envelopes(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transport_factory(transport: FakeTransport):
    async def _factory(url: str) -> FakeTransport:
        transport.url = url
        return transport
    return _factory


@pytest.fixture
def settle():
    """Let the reader task and scheduled writes run."""
    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def accept_login(transport: FakeTransport):
    """Answer the next login envelope with success for the given name."""
    def _accept(username: str = "alice") -> FakeTransport:
        transport.login_reply = {"type": "login_response", "success": True, "username": username, "user_id": 7}
        return transport
    return _accept
