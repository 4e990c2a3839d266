"""
Reconciler — keeps optimistic sends and server broadcasts from duplicating.

A locally sent message is shown at once as a provisional entry. The server
later broadcasts the same message back to every session, its author
included. The wire protocol does not echo a correlation id, so an echo from
our own identity is matched to the earliest provisional entry with the same
room and body and confirmed in place. Anything that does not match is
appended as a new confirmed entry; a server-confirmed message is never
dropped.

Entries that never see their echo stay provisional. There is no "send
failed" state unless the transport reports that the write did not happen.
"""

import itertools
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from chatroom_client.errors import NotConnected, ValidationError
from chatroom_client.models.envelope import ChatEnvelope, ChatIntent, MessageResponse
from chatroom_client.models.events import ConnectionEventType
from chatroom_client.models.message import Message
from chatroom_client.transport.websocket import ConnectionEvent, ConnectionManager

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_LENGTH = 1024  # bytes, the server's limit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CorrelationIds:
    """Monotonic, session-unique ids: ``<prefix>-<n>``."""

    def __init__(self, prefix: Optional[str] = None) -> None:
        self._prefix = prefix or uuid.uuid4().hex[:8]
        self._counter = itertools.count(1)

    def next(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"


class Reconciler:
    def __init__(
        self,
        connection: ConnectionManager,
        *,
        max_body_length: int = DEFAULT_MAX_BODY_LENGTH,
        clock: Callable[[], datetime] = _utcnow,
        ids: Optional[CorrelationIds] = None,
    ):
        self._connection = connection
        self._store = connection.store
        self._max_body_length = max_body_length
        self._clock = clock
        self._ids = ids or CorrelationIds()
        self._remove_handler: Optional[Callable[[], None]] = connection.add_event_handler(self._on_event)

    def detach(self) -> None:
        """Stop listening to the connection."""
        if self._remove_handler is not None:
            self._remove_handler()
            self._remove_handler = None

    def send(self, body: str, room: Optional[str] = None) -> Message:
        """Validate, insert a provisional entry, and hand the message to the connection.

        ``room=None`` means the store's selected room; the global room is "".
        """
        if not body or not body.strip():
            raise ValidationError("Message body is empty", code="empty_body")
        if len(body.encode("utf-8")) > self._max_body_length:
            raise ValidationError(
                f"Message body exceeds {self._max_body_length} bytes", code="body_too_long",
            )
        if not self._connection.connected:
            raise NotConnected()

        target_room = self._store.room if room is None else room
        message = Message(
            correlation_id=self._ids.next(),
            sender_identity=self._store.identity,
            body=body,
            room=target_room,
            observed_at=self._clock(),
            provisional=True,
        )
        self._store.append_message(message)
        try:
            self._connection.send(ChatIntent(body=body, room=target_room, correlation_id=message.correlation_id))
        except NotConnected:
            self._store.remove_provisional(message.correlation_id)
            raise
        return message

    def receive(self, envelope: ChatEnvelope) -> Message:
        """Apply one inbound chat envelope to the log. Returns the resulting entry."""
        identity = self._store.identity
        if identity is not None and envelope.username == identity:
            match = self._find_provisional(envelope.room_id, envelope.content)
            if match is not None:
                self._store.mark_confirmed(match.correlation_id, envelope.timestamp)
                logger.debug("Confirmed %s", match.correlation_id)
                return match.confirmed(envelope.timestamp)
            logger.debug("Echo from %s matched no provisional entry; appending", identity)

        message = Message(
            correlation_id=self._ids.next(),
            sender_identity=envelope.username,
            body=envelope.content,
            room=envelope.room_id,
            observed_at=self._clock(),
            provisional=False,
            server_timestamp=envelope.timestamp,
        )
        self._store.append_message(message)
        return message

    def pending(self, older_than: Union[timedelta, float] = 0.0, now: Optional[datetime] = None) -> tuple[Message, ...]:
        """Provisional entries observed more than ``older_than`` ago."""
        if not isinstance(older_than, timedelta):
            older_than = timedelta(seconds=older_than)
        cutoff = (now or self._clock()) - older_than
        return tuple(m for m in self._store.provisional() if m.observed_at <= cutoff)

    def _find_provisional(self, room: str, body: str) -> Optional[Message]:
        # FIFO: the earliest unconfirmed send with the same content wins.
        for message in self._store.provisional():
            if message.room == room and message.body == body:
                return message
        return None

    def _on_event(self, event: ConnectionEvent) -> None:
        if event.type == ConnectionEventType.ENVELOPE:
            if isinstance(event.envelope, ChatEnvelope):
                self.receive(event.envelope)
            elif isinstance(event.envelope, MessageResponse):
                if event.envelope.success:
                    logger.debug("Server accepted message")
                else:
                    logger.warning("Server rejected message: %s", event.envelope.error or "unknown error")
        elif event.type == ConnectionEventType.SEND_FAILED:
            intent = event.intent
            if isinstance(intent, ChatIntent) and intent.correlation_id:
                if self._store.remove_provisional(intent.correlation_id):
                    logger.info("Removed unsent message %s", intent.correlation_id)
