"""
WebSocket connection manager.

Connection: ws(s)://{host} resolved from the page origin (see endpoint.py).
Sends `login` as soon as the socket is open and waits for `login_response`
before resolving connect(). All inbound frames are decoded and dispatched
from a single reader task, so handlers never run concurrently.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import websockets
from websockets.exceptions import WebSocketException

from chatroom_client.endpoint import EndpointResolver, resolve_endpoint
from chatroom_client.errors import (
    AuthenticationRejected,
    ChatroomError,
    ConnectionLost,
    DecodeError,
    HandshakeTimeout,
    NotConnected,
    ValidationError,
)
from chatroom_client.models.envelope import Intent, LoginIntent, LoginResponse
from chatroom_client.models.events import ConnectionEventType
from chatroom_client.models.state import ConnectionState
from chatroom_client.store import SessionStore
from chatroom_client.transport.codec import ProtocolCodec

logger = logging.getLogger(__name__)

DEFAULT_HANDSHAKE_TIMEOUT = 10.0

# asyncio.TimeoutError is not an OSError before Python 3.11
TRANSPORT_ERRORS = (WebSocketException, OSError, EOFError, asyncio.TimeoutError)


class Transport(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> Union[str, bytes]: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[str], Awaitable[Transport]]


async def open_websocket(url: str) -> Transport:
    return await websockets.connect(url)


class ConnectionEvent:
    __slots__ = ("type", "envelope", "error", "state", "intent")

    def __init__(
        self,
        type: str,
        envelope: Any = None,
        error: Optional[ChatroomError] = None,
        state: Optional[ConnectionState] = None,
        intent: Optional[Intent] = None,
    ):
        self.type = type
        self.envelope = envelope
        self.error = error
        self.state = state
        self.intent = intent

    def __repr__(self) -> str:
        return f"ConnectionEvent(type={self.type!r})"


EventHandler = Callable[[ConnectionEvent], None]


class ConnectionManager:
    def __init__(
        self,
        store: Optional[SessionStore] = None,
        transport_factory: Optional[TransportFactory] = None,
        handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
        codec: Any = ProtocolCodec,
    ):
        self._store = store or SessionStore()
        self._transport_factory = transport_factory or open_websocket
        self._handshake_timeout = handshake_timeout
        self._codec = codec
        self._transport: Optional[Transport] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._handshake: Optional[asyncio.Future[LoginResponse]] = None
        self._pending_identity: Optional[str] = None
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._write_lock = asyncio.Lock()
        self._event_handlers: list[EventHandler] = []
        self._url: Optional[str] = None

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def state(self) -> ConnectionState:
        return self._store.state

    @property
    def connected(self) -> bool:
        return self._store.is_active and self._transport is not None

    @property
    def url(self) -> Optional[str]:
        return self._url

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(
        self,
        endpoint: Union[str, EndpointResolver],
        identity: str,
        *,
        password: Optional[str] = None,
    ) -> LoginResponse:
        """Open the transport, log in, and wait for the server's answer.

        Resolves once the session is ACTIVE. Raises AuthenticationRejected,
        HandshakeTimeout or ConnectionLost otherwise; in every failure case
        the transport has been released.
        """
        if not identity or not identity.strip():
            raise ValidationError("Identity must be a non-empty string", code="empty_identity")
        if self.state is ConnectionState.FAILED:
            await self.close()
        if self.state is not ConnectionState.DISCONNECTED:
            raise ChatroomError("already_connected", f"Cannot connect while {self.state.value}")

        url = resolve_endpoint(endpoint)
        self._url = url
        self._store.reset()
        self._set_state(ConnectionState.CONNECTING)
        logger.info("Connecting to %s as %s", url, identity)

        try:
            transport = await self._transport_factory(url)
        except TRANSPORT_ERRORS as e:
            if self.state is ConnectionState.CONNECTING:
                self._set_state(ConnectionState.FAILED)
            raise ConnectionLost(f"Could not open {url}: {e}") from e
        except BaseException:
            # cancelled while opening; no transport to release
            if self.state is ConnectionState.CONNECTING:
                self._set_state(ConnectionState.DISCONNECTED)
            raise
        if self.state is not ConnectionState.CONNECTING:
            # close() won the race while the socket was opening
            await self._close_transport(transport)
            raise ConnectionLost("Connection closed during connect")
        self._transport = transport

        try:
            return await self._login(transport, identity, password)
        except BaseException:
            handshake, self._handshake = self._handshake, None
            if handshake is not None and not handshake.done():
                handshake.cancel()
            if self.state in (ConnectionState.CONNECTING, ConnectionState.AWAITING_LOGIN_RESPONSE):
                await self.close()
            raise
        finally:
            self._handshake = None
            self._pending_identity = None

    async def _login(self, transport: Transport, identity: str, password: Optional[str]) -> LoginResponse:
        loop = asyncio.get_running_loop()
        self._handshake = loop.create_future()
        self._pending_identity = identity
        self._set_state(ConnectionState.AWAITING_LOGIN_RESPONSE)

        try:
            await transport.send(self._codec.encode(LoginIntent(identity=identity, password=password)))
        except TRANSPORT_ERRORS as e:
            self._handshake = None
            self._pending_identity = None
            await self._lose(transport, ConnectionLost(f"Login send failed: {e}"))
            raise ConnectionLost(f"Login send failed: {e}") from e

        self._reader = loop.create_task(self._read_loop(transport))

        try:
            response = await asyncio.wait_for(self._handshake, timeout=self._handshake_timeout)
        except asyncio.TimeoutError:
            logger.warning("No login_response from %s after %ss", self._url, self._handshake_timeout)
            self._handshake = None
            await self.close()
            raise HandshakeTimeout(self._handshake_timeout) from None

        if not response.success:
            reason = response.error or "Login rejected"
            logger.warning("Login rejected for %s: %s", identity, reason)
            await self.close()
            raise AuthenticationRejected(reason)
        return response

    def send(self, intent: Intent) -> None:
        """Encode and write an intent without waiting (fire-and-forget).

        Raises NotConnected immediately when the session is not ACTIVE; later
        failures are delivered as `send_failed` events.
        """
        if not self.connected:
            raise NotConnected()
        payload = self._codec.encode(intent)
        task = asyncio.get_running_loop().create_task(self._write(intent, payload))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def flush(self) -> None:
        """Wait until every scheduled write has been performed or failed."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def close(self) -> None:
        """Release the transport. Safe to call any number of times, from any state."""
        if self.state is ConnectionState.CLOSING:
            return
        if self.state is ConnectionState.DISCONNECTED and self._transport is None:
            return
        self._set_state(ConnectionState.CLOSING)

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(ConnectionLost("Connection closed during handshake"))

        async with self._write_lock:
            transport, self._transport = self._transport, None
        if transport is not None:
            await self._close_transport(transport)
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Connection to %s closed", self._url)

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _read_loop(self, transport: Transport) -> None:
        try:
            while True:
                raw = await transport.recv()
                self._dispatch(raw)
        except TRANSPORT_ERRORS as e:
            await self._lose(transport, ConnectionLost(f"Connection lost: {e}"))
        except Exception as e:
            logger.exception("Reader stopped unexpectedly")
            await self._lose(transport, ConnectionLost(f"Reader failed: {e}"))

    def _dispatch(self, raw: Union[str, bytes]) -> None:
        try:
            envelope = self._codec.decode(raw)
        except DecodeError as e:
            logger.warning("Discarding inbound frame (%s): %s", e.code, e)
            return
        logger.debug("Received %s envelope", envelope.type)

        if isinstance(envelope, LoginResponse):
            self._on_login_response(envelope)
            return
        if self.state is not ConnectionState.ACTIVE:
            logger.debug("Dropping %s envelope received while %s", envelope.type, self.state.value)
            return
        self._emit(ConnectionEvent(ConnectionEventType.ENVELOPE, envelope=envelope))

    def _on_login_response(self, response: LoginResponse) -> None:
        if self._handshake is None or self._handshake.done():
            logger.debug("Ignoring unsolicited login_response")
            return
        if response.success:
            # Activate before any later frame is dispatched.
            self._store.activate(response.username or self._pending_identity or "")
            self._emit(ConnectionEvent(ConnectionEventType.STATE, state=ConnectionState.ACTIVE))
        self._handshake.set_result(response)

    async def _write(self, intent: Intent, payload: str) -> None:
        async with self._write_lock:
            transport = self._transport
            if transport is None or not self._store.is_active:
                logger.warning("Dropping %s: connection closed before write", type(intent).__name__)
                self._emit(ConnectionEvent(
                    ConnectionEventType.SEND_FAILED, intent=intent,
                    error=NotConnected("Connection closed before the message was written"),
                ))
                return
            try:
                await transport.send(payload)
            except TRANSPORT_ERRORS as e:
                logger.error("Send failed for %s: %s", type(intent).__name__, e)
                self._emit(ConnectionEvent(
                    ConnectionEventType.SEND_FAILED, intent=intent, error=ConnectionLost(str(e)),
                ))
                lost = ConnectionLost(f"Connection lost: {e}")
            else:
                logger.debug("Sent %s", payload)
                return
        await self._lose(transport, lost)

    async def _lose(self, transport: Transport, error: ConnectionLost) -> None:
        if transport is not self._transport:
            return
        self._transport = None
        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(error)

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()

        if self.state not in (ConnectionState.CLOSING, ConnectionState.DISCONNECTED):
            logger.warning("%s", error)
            self._set_state(ConnectionState.FAILED)
            self._emit(ConnectionEvent(ConnectionEventType.FAILURE, error=error))
        await self._close_transport(transport)

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("Error while closing transport: %s", e)

    def _set_state(self, state: ConnectionState) -> None:
        self._store.transition(state)
        self._emit(ConnectionEvent(ConnectionEventType.STATE, state=state))

    def _emit(self, event: ConnectionEvent) -> None:
        for handler in list(self._event_handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.type)
