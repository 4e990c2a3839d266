"""
SessionStore — the local view of one chat session.

Holds connection state, identity, selected room and the ordered message log.
The log is kept as an immutable tuple that is replaced on every mutation, so
readers always see a consistent snapshot. Order is append order; nothing is
ever resorted by timestamp.
"""

import logging
from typing import Callable, Optional

from chatroom_client.errors import ChatroomError, ValidationError
from chatroom_client.models.message import Message
from chatroom_client.models.state import ACTIVATABLE_STATES, CONNECTION_TRANSITIONS, ConnectionState

logger = logging.getLogger(__name__)

Listener = Callable[["SessionStore"], None]


class SessionStore:
    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._identity: Optional[str] = None
        self._room = ""
        self._messages: tuple[Message, ...] = ()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def room(self) -> str:
        return self._room

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    @property
    def is_active(self) -> bool:
        return self._state is ConnectionState.ACTIVE

    def provisional(self) -> tuple[Message, ...]:
        """Unconfirmed entries, in log order."""
        return tuple(m for m in self._messages if m.provisional)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def transition(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        if state not in CONNECTION_TRANSITIONS[self._state]:
            raise ChatroomError(
                "invalid_transition",
                f"Cannot move from {self._state.value} to {state.value}",
                details={"from": self._state.value, "to": state.value},
            )
        logger.debug("Connection state %s -> %s", self._state.value, state.value)
        self._state = state
        self._notify()

    def activate(self, identity: str) -> None:
        if not identity:
            raise ValidationError("Identity must be a non-empty string", code="empty_identity")
        if self._state not in ACTIVATABLE_STATES:
            raise ChatroomError("invalid_transition", f"Cannot activate from {self._state.value}")
        if self._identity is not None and self._identity != identity:
            raise ChatroomError("identity_locked", f"Session already bound to {self._identity!r}")
        self._identity = identity
        self._state = ConnectionState.ACTIVE
        logger.info("Session active as %s", identity)
        self._notify()

    def select_room(self, room: str) -> None:
        self._room = room or ""
        self._notify()

    def append_message(self, message: Message) -> None:
        self._messages = self._messages + (message,)
        self._notify()

    def mark_confirmed(self, correlation_id: str, server_timestamp: Optional[str] = None) -> bool:
        """Flip a provisional entry to confirmed in place. Returns False if absent."""
        for index, message in enumerate(self._messages):
            if message.correlation_id == correlation_id:
                if message.provisional:
                    self._messages = self._messages[:index] + (message.confirmed(server_timestamp),) + self._messages[index + 1:]
                    self._notify()
                return True
        return False

    def remove_provisional(self, correlation_id: str) -> bool:
        """Drop a still-provisional entry. Confirmed entries are never removed."""
        for index, message in enumerate(self._messages):
            if message.correlation_id == correlation_id and message.provisional:
                self._messages = self._messages[:index] + self._messages[index + 1:]
                self._notify()
                return True
        return False

    def reset(self) -> None:
        """Forget identity, room and log (logout / connection loss)."""
        self._identity = None
        self._room = ""
        self._messages = ()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener failed")
