"""
Auth module — account login and registration over HTTP.

This happens before the persistent connection is opened; on success the
caller connects with the same username.
"""

from typing import Optional

from chatroom_client.errors import AuthError, ChatroomError
from chatroom_client.models.server import LoginResult, RegisterResult
from chatroom_client.transport.http import HttpClient

CLIENT_TYPE = "web"


class Auth:
    def __init__(self, http: HttpClient):
        self._http = http

    async def login(self, username: str, password: str) -> LoginResult:
        """POST /login. Raises AuthError when the server refuses."""
        if not username.strip() or not password.strip():
            raise AuthError("Username and password are required", code="missing_credentials")
        try:
            data = await self._http.post(
                "/login", {"username": username, "password": password, "client_type": CLIENT_TYPE},
            )
        except ChatroomError as e:
            raise AuthError(f"Login failed: {e}") from e
        result = LoginResult.model_validate(data)
        if not result.success:
            raise AuthError(result.error or "Login failed", code="login_failed")
        return result

    async def register(self, username: str, password: str, email: Optional[str] = None) -> RegisterResult:
        """POST /register. Raises AuthError when the server refuses."""
        if not username.strip() or not password.strip():
            raise AuthError("Username and password are required", code="missing_credentials")
        body = {"username": username, "password": password, "client_type": CLIENT_TYPE}
        if email:
            body["email"] = email
        try:
            data = await self._http.post("/register", body)
        except ChatroomError as e:
            raise AuthError(f"Registration failed: {e}") from e
        result = RegisterResult.model_validate(data)
        if not result.success:
            raise AuthError(result.error or "Registration failed", code="register_failed")
        return result
