"""
Chatroom client error types.

Every error carries a machine-readable ``code`` next to the human message so
callers (and the CLI) can branch without parsing strings.
"""

from typing import Any, Optional


class ChatroomError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class DecodeError(ChatroomError):
    """Inbound payload could not be turned into an envelope.

    ``code`` is ``"malformed"`` or ``"unknown_kind"``. Never fatal to a session.
    """

    MALFORMED = "malformed"
    UNKNOWN_KIND = "unknown_kind"

    def __init__(self, message: str, code: str = MALFORMED, details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class AuthError(ChatroomError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class AuthenticationRejected(ChatroomError):
    """The server answered the login envelope with success=false."""

    def __init__(self, reason: str = "Login rejected"):
        super().__init__("authentication_rejected", reason)
        self.reason = reason


class HandshakeTimeout(ChatroomError):
    def __init__(self, timeout: float):
        super().__init__("handshake_timeout", f"Timed out waiting for login_response after {timeout}s")
        self.timeout = timeout


class ConnectionLost(ChatroomError):
    def __init__(self, message: str = "Connection lost"):
        super().__init__("connection_lost", message)


class NotConnected(ChatroomError):
    def __init__(self, message: str = "Not connected. Call connect() first."):
        super().__init__("not_connected", message)


class ValidationError(ChatroomError):
    def __init__(self, message: str, code: str = "validation_error"):
        super().__init__(code, message)
