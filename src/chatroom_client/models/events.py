"""
Wire envelope kinds and connection event types.
"""


class EnvelopeType:
    """Values of the ``type`` discriminant on the wire."""
    LOGIN = "login"
    LOGIN_RESPONSE = "login_response"
    MESSAGE = "message"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    MESSAGE_RESPONSE = "message_response"

    ALL = frozenset({LOGIN, LOGIN_RESPONSE, MESSAGE, JOIN_ROOM, LEAVE_ROOM, MESSAGE_RESPONSE})


class ConnectionEventType:
    """Events a ConnectionManager delivers to its handlers."""
    ENVELOPE = "envelope"          # decoded inbound envelope
    FAILURE = "failure"            # transport lost; carries ConnectionLost
    SEND_FAILED = "send_failed"    # a scheduled write was not performed
    STATE = "state"                # ConnectionState changed
