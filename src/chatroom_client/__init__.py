"""
chatroom-client — realtime chat client for Python.

WebSocket session engine (login handshake, JSON envelopes, optimistic
message reconciliation) plus a thin REST client for the chat server.
"""

from chatroom_client.client import ChatroomClient, AsyncChatroomClient
from chatroom_client.auth import Auth
from chatroom_client.server import ServerAPI
from chatroom_client.store import SessionStore
from chatroom_client.reconciler import Reconciler
from chatroom_client.endpoint import EndpointResolver
from chatroom_client.transport.websocket import ConnectionManager, ConnectionEvent
from chatroom_client.errors import (
    ChatroomError,
    DecodeError,
    AuthError,
    AuthenticationRejected,
    HandshakeTimeout,
    ConnectionLost,
    NotConnected,
    ValidationError,
)
from chatroom_client.models.events import EnvelopeType, ConnectionEventType
from chatroom_client.models.message import Message
from chatroom_client.models.state import ConnectionState, ViewState

__version__ = "0.1.0"
__all__ = [
    "ChatroomClient",
    "AsyncChatroomClient",
    "Auth",
    "ServerAPI",
    "SessionStore",
    "Reconciler",
    "EndpointResolver",
    "ConnectionManager",
    "ConnectionEvent",
    "ChatroomError",
    "DecodeError",
    "AuthError",
    "AuthenticationRejected",
    "HandshakeTimeout",
    "ConnectionLost",
    "NotConnected",
    "ValidationError",
    "EnvelopeType",
    "ConnectionEventType",
    "Message",
    "ConnectionState",
    "ViewState",
]
