"""
ChatroomClient / AsyncChatroomClient — main client facades.

The async client composes the HTTP collaborator (auth, server API) with one
ConnectionManager + Reconciler per login, and drives the view state machine
the presentation layer renders from.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Optional, Union

from chatroom_client.auth import Auth
from chatroom_client.endpoint import EndpointResolver
from chatroom_client.errors import ChatroomError, ConnectionLost, NotConnected
from chatroom_client.models.envelope import JoinRoomIntent, LeaveRoomIntent, LoginResponse
from chatroom_client.models.events import ConnectionEventType
from chatroom_client.models.message import Message
from chatroom_client.models.state import VIEW_TRANSITIONS, ConnectionState, ViewState
from chatroom_client.reconciler import DEFAULT_MAX_BODY_LENGTH, Reconciler
from chatroom_client.server import ServerAPI
from chatroom_client.store import SessionStore
from chatroom_client.transport.http import CLIENT_VERSION, DEFAULT_BASE_URL, HttpClient
from chatroom_client.transport.websocket import (
    DEFAULT_HANDSHAKE_TIMEOUT,
    ConnectionEvent,
    ConnectionManager,
    TransportFactory,
)

logger = logging.getLogger(__name__)

# The server drops sessions silent for 60 s.
DEFAULT_HEARTBEAT_INTERVAL = 20.0


class AsyncChatroomClient:
    """Async chat client (primary)."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        ws_url: Optional[Union[str, EndpointResolver]] = None,
        handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
        max_body_length: int = DEFAULT_MAX_BODY_LENGTH,
        send_password_in_handshake: bool = False,
        heartbeat_interval: Optional[float] = DEFAULT_HEARTBEAT_INTERVAL,
        transport_factory: Optional[TransportFactory] = None,
        http: Optional[HttpClient] = None,
    ):
        self._base_url = base_url
        self._endpoint: Union[str, EndpointResolver] = ws_url or EndpointResolver(base_url)
        self._handshake_timeout = handshake_timeout
        self._max_body_length = max_body_length
        self._send_password_in_handshake = send_password_in_handshake
        self._heartbeat_interval = heartbeat_interval
        self._transport_factory = transport_factory

        self.http = http or HttpClient(base_url=base_url)
        self.auth = Auth(self.http)
        self.server = ServerAPI(self.http)

        self._store = SessionStore()
        self._connection: Optional[ConnectionManager] = None
        self._reconciler: Optional[Reconciler] = None
        self._view = ViewState.LOGGED_OUT
        self._last_error: Optional[str] = None
        self._background: set[asyncio.Task[None]] = set()
        self._heartbeat: Optional[asyncio.Task[None]] = None
        self._connection_id: Optional[Union[int, str]] = None

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def last_error(self) -> Optional[str]:
        """Reason the last session attempt or session ended, for the login screen."""
        return self._last_error

    @property
    def state(self) -> ConnectionState:
        return self._store.state

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    @property
    def identity(self) -> Optional[str]:
        return self._store.identity

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._store.messages

    async def login(self, username: str, password: Optional[str] = None) -> LoginResponse:
        """Authenticate over HTTP (when a password is given), then open the session."""
        if self._view is not ViewState.LOGGED_OUT:
            await self.logout()
        self._set_view(ViewState.AUTHENTICATING)
        self._last_error = None
        self._connection_id = None
        if password is not None:
            try:
                result = await self.auth.login(username, password)
            except BaseException as e:
                self._last_error = str(e) or type(e).__name__
                self._set_view(ViewState.LOGGED_OUT)
                raise
            self._connection_id = result.connection_id
        return await self._open_session(username, password if self._send_password_in_handshake else None)

    async def connect(self, username: str) -> LoginResponse:
        """Open the session without the HTTP login step."""
        if self._view is not ViewState.LOGGED_OUT:
            await self.logout()
        self._set_view(ViewState.AUTHENTICATING)
        self._last_error = None
        self._connection_id = None
        return await self._open_session(username, None)

    async def _open_session(self, username: str, password: Optional[str]) -> LoginResponse:
        if self._connection is not None:
            await self._teardown()

        store = SessionStore()
        connection = ConnectionManager(
            store,
            transport_factory=self._transport_factory,
            handshake_timeout=self._handshake_timeout,
        )
        reconciler = Reconciler(connection, max_body_length=self._max_body_length)
        connection.add_event_handler(self._on_connection_event)
        self._store = store

        try:
            response = await connection.connect(self._endpoint, username, password=password)
        except BaseException as e:
            reconciler.detach()
            await connection.close()
            self._last_error = str(e) or type(e).__name__
            self._set_view(ViewState.LOGGED_OUT)
            raise

        self._connection = connection
        self._reconciler = reconciler
        self._set_view(ViewState.ACTIVE)
        self._start_heartbeat(store.identity or username)
        return response

    async def logout(self) -> None:
        """Close the session and discard its log. Safe to call when logged out."""
        await self._teardown()
        self._store.reset()
        self._set_view(ViewState.LOGGED_OUT)

    def send(self, content: str, room: Optional[str] = None) -> Message:
        """Send a chat message (fire-and-forget). Returns the provisional log entry."""
        self._ensure_connected()
        return self._reconciler.send(content, room)  # type: ignore[union-attr]

    async def flush(self) -> None:
        """Wait for scheduled writes to hit the transport."""
        if self._connection is not None:
            await self._connection.flush()

    def join_room(self, room: str) -> None:
        """Switch the selected room. Only one room is joined at a time; "" is global."""
        self._ensure_connected()
        previous = self._store.room
        if previous == room:
            return
        if previous:
            self._connection.send(LeaveRoomIntent(room=previous))  # type: ignore[union-attr]
        if room:
            self._connection.send(JoinRoomIntent(room=room))  # type: ignore[union-attr]
        self._store.select_room(room)

    def open_settings(self) -> None:
        self._set_view(ViewState.SETTINGS)

    def close_settings(self) -> None:
        self._set_view(ViewState.ACTIVE)

    def pending(self, older_than: float = 5.0) -> tuple[Message, ...]:
        """Sends still waiting for their echo after ``older_than`` seconds."""
        if self._reconciler is None:
            return ()
        return self._reconciler.pending(older_than)

    async def subscribe(self) -> AsyncGenerator[Message, None]:
        """Yield each new log entry and each entry that becomes confirmed.

        Runs until the session ends.
        """
        self._ensure_connected()
        store = self._store
        queue: asyncio.Queue[Message] = asyncio.Queue()
        seen: dict[str, bool] = {m.correlation_id: m.provisional for m in store.messages}

        def _listener(changed: SessionStore) -> None:
            for message in changed.messages:
                if seen.get(message.correlation_id) != message.provisional:
                    seen[message.correlation_id] = message.provisional
                    queue.put_nowait(message)

        remove = store.add_listener(_listener)
        try:
            while self.connected or not queue.empty():
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
        finally:
            remove()

    async def aclose(self) -> None:
        await self.logout()
        await self.http.close()

    async def __aenter__(self) -> "AsyncChatroomClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _on_connection_event(self, event: ConnectionEvent) -> None:
        if event.type != ConnectionEventType.FAILURE:
            return
        connection = self._connection
        if connection is None:
            return
        error = event.error or ConnectionLost()
        logger.warning("Session ended: %s", error)
        self._last_error = str(error)
        self._store.reset()
        self._reconciler.detach()  # type: ignore[union-attr]
        self._connection = None
        self._reconciler = None
        self._cancel_heartbeat()
        self._set_view(ViewState.LOGGED_OUT)
        task = asyncio.get_running_loop().create_task(connection.close())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _start_heartbeat(self, username: str) -> None:
        if not self._heartbeat_interval:
            return
        self._heartbeat = asyncio.get_running_loop().create_task(self._heartbeat_loop(username, self._connection_id))

    def _cancel_heartbeat(self) -> None:
        task, self._heartbeat = self._heartbeat, None
        if task is not None:
            task.cancel()
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _heartbeat_loop(self, username: str, connection_id: Optional[Union[int, str]]) -> None:
        """POST /heartbeat every interval so the server keeps listing us online."""
        while True:
            try:
                result = await self.server.heartbeat(username, connection_id=connection_id, client_version=CLIENT_VERSION)
            except (ChatroomError, ValueError) as e:
                logger.warning("Heartbeat failed: %s", e)
            else:
                if not result.success:
                    logger.warning("Heartbeat rejected: %s", result.message or "no reason given")
                else:
                    logger.debug("Heartbeat ok for %s", username)
            await asyncio.sleep(self._heartbeat_interval)  # type: ignore[arg-type]

    async def _teardown(self) -> None:
        self._cancel_heartbeat()
        connection, self._connection = self._connection, None
        reconciler, self._reconciler = self._reconciler, None
        if reconciler is not None:
            reconciler.detach()
        if connection is not None:
            await connection.close()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _set_view(self, view: ViewState) -> None:
        if view is self._view:
            return
        if view not in VIEW_TRANSITIONS[self._view]:
            raise ChatroomError("invalid_view", f"Cannot go from {self._view.value} to {view.value}")
        logger.debug("View %s -> %s", self._view.value, view.value)
        self._view = view

    def _ensure_connected(self) -> None:
        if self._reconciler is None or self._connection is None or not self._connection.connected:
            raise NotConnected()


class ChatroomClient:
    """Sync wrapper around AsyncChatroomClient. Runs the event loop internally.

    Inbound messages are only processed while a call is running; use poll()
    to let the session catch up.
    """

    def __init__(self, **kwargs: Any):
        self._async = AsyncChatroomClient(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def auth(self) -> Auth:
        return self._async.auth

    @property
    def server(self) -> ServerAPI:
        return self._async.server

    @property
    def view(self) -> ViewState:
        return self._async.view

    @property
    def state(self) -> ConnectionState:
        return self._async.state

    @property
    def connected(self) -> bool:
        return self._async.connected

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._async.messages

    @property
    def last_error(self) -> Optional[str]:
        return self._async.last_error

    def login(self, username: str, password: Optional[str] = None) -> LoginResponse:
        return self._run(self._async.login(username, password))

    def connect(self, username: str) -> LoginResponse:
        return self._run(self._async.connect(username))

    def logout(self) -> None:
        self._run(self._async.logout())

    def send(self, content: str, room: Optional[str] = None) -> Message:
        """Send and wait until the frame is written."""
        async def _send() -> Message:
            message = self._async.send(content, room)
            await self._async.flush()
            return message
        return self._run(_send())

    def join_room(self, room: str) -> None:
        async def _join() -> None:
            self._async.join_room(room)
            await self._async.flush()
        self._run(_join())

    def poll(self, seconds: float = 0.1) -> tuple[Message, ...]:
        """Let inbound frames be processed for ``seconds``; returns the log."""
        self._run(asyncio.sleep(seconds))
        return self._async.messages

    def close(self) -> None:
        self._run(self._async.aclose())
        self._loop.close()
