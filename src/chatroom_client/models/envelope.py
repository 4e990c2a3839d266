"""
Wire envelopes and outbound intents.

Envelopes mirror the JSON records exchanged over the persistent connection,
discriminated by ``type``. Intents are what callers hand to the codec; they
carry local-only data (the chat correlation id) that never goes on the wire.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class LoginEnvelope(BaseModel):
    """C2S login — sent once per connection."""
    type: Literal["login"] = "login"
    username: str
    password: Optional[str] = None


class LoginResponse(BaseModel):
    """S2C login_response — terminal for the handshake."""
    type: Literal["login_response"] = "login_response"
    success: bool
    username: Optional[str] = None
    user_id: Optional[Union[int, str]] = None
    error: Optional[str] = None


class ChatEnvelope(BaseModel):
    """Bidirectional chat message. ``username`` is only set by the server."""
    type: Literal["message"] = "message"
    content: str
    room_id: str = ""
    username: Optional[str] = None
    timestamp: Optional[str] = None


class JoinRoomEnvelope(BaseModel):
    type: Literal["join_room"] = "join_room"
    room_id: str


class LeaveRoomEnvelope(BaseModel):
    type: Literal["leave_room"] = "leave_room"
    room_id: str


class MessageResponse(BaseModel):
    """S2C receipt for a chat send. Informational only."""
    type: Literal["message_response"] = "message_response"
    success: bool
    error: Optional[str] = None


Envelope = Annotated[
    Union[LoginEnvelope, LoginResponse, ChatEnvelope, JoinRoomEnvelope, LeaveRoomEnvelope, MessageResponse],
    Field(discriminator="type"),
]


class LoginIntent(BaseModel):
    identity: str
    password: Optional[str] = None


class ChatIntent(BaseModel):
    body: str
    room: str = ""
    correlation_id: Optional[str] = None  # local only


class JoinRoomIntent(BaseModel):
    room: str


class LeaveRoomIntent(BaseModel):
    room: str


Intent = Union[LoginIntent, ChatIntent, JoinRoomIntent, LeaveRoomIntent]
