"""
Envelope encoding and decoding for the persistent-connection protocol.

Encoding never fails for a well-formed intent. Decoding raises DecodeError,
which callers log and discard: one bad frame must not end a session.
"""

import json
from typing import Any, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from chatroom_client.errors import DecodeError
from chatroom_client.models.envelope import (
    ChatEnvelope,
    ChatIntent,
    Envelope,
    Intent,
    JoinRoomEnvelope,
    JoinRoomIntent,
    LeaveRoomEnvelope,
    LeaveRoomIntent,
    LoginEnvelope,
    LoginIntent,
)
from chatroom_client.models.events import EnvelopeType

_ENVELOPE_ADAPTER: TypeAdapter[Any] = TypeAdapter(Envelope)


def build_envelope(intent: Intent) -> Union[LoginEnvelope, ChatEnvelope, JoinRoomEnvelope, LeaveRoomEnvelope]:
    """Map an outbound intent to the envelope that represents it on the wire."""
    if isinstance(intent, LoginIntent):
        return LoginEnvelope(username=intent.identity, password=intent.password)
    if isinstance(intent, ChatIntent):
        # username is filled in by the server; correlation_id stays local
        return ChatEnvelope(content=intent.body, room_id=intent.room or "")
    if isinstance(intent, JoinRoomIntent):
        return JoinRoomEnvelope(room_id=intent.room)
    if isinstance(intent, LeaveRoomIntent):
        return LeaveRoomEnvelope(room_id=intent.room)
    raise TypeError(f"Unsupported intent: {type(intent).__name__}")


def encode(intent: Intent) -> str:
    """Encode an intent as compact JSON text, omitting unset optional fields."""
    return build_envelope(intent).model_dump_json(exclude_none=True)


def decode(raw: Union[str, bytes]) -> Any:
    """Parse one inbound frame into a typed envelope."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Frame is not valid UTF-8: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Frame is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")

    kind = data.get("type")
    if not isinstance(kind, str) or kind not in EnvelopeType.ALL:
        raise DecodeError(f"Unknown envelope kind: {kind!r}", code=DecodeError.UNKNOWN_KIND, details={"type": kind})

    try:
        return _ENVELOPE_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise DecodeError(
            f"Invalid {kind} envelope: {e.error_count()} field error(s)",
            details={"type": kind, "errors": e.errors(include_url=False)},
        ) from e


class ProtocolCodec:
    """Stateless namespace over encode/decode, for injection into managers."""

    encode = staticmethod(encode)
    decode = staticmethod(decode)
