"""Wire envelope encoding/decoding."""

import json

import pytest

from chatroom_client.errors import DecodeError
from chatroom_client.models.envelope import (
    ChatEnvelope,
    ChatIntent,
    JoinRoomIntent,
    LeaveRoomIntent,
    LoginIntent,
    LoginResponse,
    MessageResponse,
)
from chatroom_client.transport.codec import ProtocolCodec, decode, encode


class TestEncode:
    def test_login_carries_only_username(self):
        assert json.loads(encode(LoginIntent(identity="alice"))) == {"type": "login", "username": "alice"}

    def test_login_with_password(self):
        data = json.loads(encode(LoginIntent(identity="alice", password="pw")))
        assert data == {"type": "login", "username": "alice", "password": "pw"}

    def test_chat_omits_username_and_correlation_id(self):
        raw = encode(ChatIntent(body="hi", room="", correlation_id="abc-1"))
        assert json.loads(raw) == {"type": "message", "content": "hi", "room_id": ""}
        assert "abc-1" not in raw

    def test_chat_room(self):
        assert json.loads(encode(ChatIntent(body="hi", room="dev")))["room_id"] == "dev"

    def test_room_intents(self):
        assert json.loads(encode(JoinRoomIntent(room="dev"))) == {"type": "join_room", "room_id": "dev"}
        assert json.loads(encode(LeaveRoomIntent(room="dev"))) == {"type": "leave_room", "room_id": "dev"}

    def test_compact_output(self):
        assert encode(LoginIntent(identity="alice")) == '{"type":"login","username":"alice"}'

    def test_unsupported_intent(self):
        with pytest.raises(TypeError):
            encode("hello")  # type: ignore[arg-type]


class TestDecode:
    def test_login_response(self):
        env = decode('{"type":"login_response","success":true,"username":"alice","user_id":3}')
        assert isinstance(env, LoginResponse)
        assert env.success is True
        assert env.username == "alice"
        assert env.user_id == 3

    def test_login_response_failure_with_reason(self):
        env = decode('{"type":"login_response","success":false,"error":"Invalid username or password"}')
        assert env.success is False
        assert env.error == "Invalid username or password"

    def test_chat_from_server(self):
        env = decode('{"type":"message","content":"yo","username":"bob","timestamp":"2024-01-01 10:00:00"}')
        assert isinstance(env, ChatEnvelope)
        assert env.username == "bob"
        assert env.room_id == ""  # server omits room_id for the global room
        assert env.timestamp == "2024-01-01 10:00:00"

    def test_extra_fields_ignored(self):
        env = decode('{"type":"message","content":"psst","username":"bob","target_user":"alice"}')
        assert env.content == "psst"

    def test_bytes_frame(self):
        assert isinstance(decode(b'{"type":"message_response","success":true}'), MessageResponse)

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"', "", b"\xff\xfe"])
    def test_malformed(self, raw):
        with pytest.raises(DecodeError) as exc:
            decode(raw)
        assert exc.value.code == DecodeError.MALFORMED

    def test_known_kind_with_bad_fields_is_malformed(self):
        with pytest.raises(DecodeError) as exc:
            decode('{"type":"message","room_id":""}')
        assert exc.value.code == DecodeError.MALFORMED
        assert exc.value.details["type"] == "message"

    @pytest.mark.parametrize("raw", ['{"type":"typing","username":"bob"}', '{"content":"x"}', '{"type":[1]}'])
    def test_unknown_kind(self, raw):
        with pytest.raises(DecodeError) as exc:
            decode(raw)
        assert exc.value.code == DecodeError.UNKNOWN_KIND


def test_codec_namespace():
    assert ProtocolCodec.decode(ProtocolCodec.encode(ChatIntent(body="x"))).content == "x"
