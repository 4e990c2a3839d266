"""
Connection and view state machines.
"""

from enum import Enum


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_LOGIN_RESPONSE = "awaiting_login_response"
    ACTIVE = "active"
    CLOSING = "closing"
    FAILED = "failed"


CONNECTION_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset({
        ConnectionState.AWAITING_LOGIN_RESPONSE, ConnectionState.CLOSING,
        ConnectionState.FAILED, ConnectionState.DISCONNECTED,
    }),
    ConnectionState.AWAITING_LOGIN_RESPONSE: frozenset({
        ConnectionState.ACTIVE, ConnectionState.CLOSING,
        ConnectionState.FAILED, ConnectionState.DISCONNECTED,
    }),
    ConnectionState.ACTIVE: frozenset({ConnectionState.CLOSING, ConnectionState.FAILED}),
    ConnectionState.CLOSING: frozenset({ConnectionState.DISCONNECTED}),
    ConnectionState.FAILED: frozenset({ConnectionState.CLOSING, ConnectionState.DISCONNECTED}),
}

# States from which SessionStore.activate() may promote a session.
ACTIVATABLE_STATES = frozenset({
    ConnectionState.DISCONNECTED,
    ConnectionState.CONNECTING,
    ConnectionState.AWAITING_LOGIN_RESPONSE,
})


class ViewState(str, Enum):
    """Screen the presentation layer should show."""
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    SETTINGS = "settings"


VIEW_TRANSITIONS: dict[ViewState, frozenset[ViewState]] = {
    ViewState.LOGGED_OUT: frozenset({ViewState.AUTHENTICATING}),
    ViewState.AUTHENTICATING: frozenset({ViewState.ACTIVE, ViewState.LOGGED_OUT}),
    ViewState.ACTIVE: frozenset({ViewState.SETTINGS, ViewState.LOGGED_OUT}),
    ViewState.SETTINGS: frozenset({ViewState.ACTIVE, ViewState.LOGGED_OUT}),
}
