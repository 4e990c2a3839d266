"""
Request/response payloads of the chat server's HTTP endpoints.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


class LoginResult(BaseModel):
    """POST /login response."""
    success: bool
    error: Optional[str] = None
    username: Optional[str] = None
    user_id: Optional[Union[int, str]] = None
    connection_id: Optional[Union[int, str]] = None


class RegisterResult(BaseModel):
    """POST /register response."""
    success: bool
    error: Optional[str] = None
    username: Optional[str] = None


class OnlineUser(BaseModel):
    username: str
    user_id: Optional[Union[int, str]] = None
    client_type: Optional[str] = None
    idle_seconds: int = 0
    online_seconds: int = 0


class UserList(BaseModel):
    """GET /users response."""
    success: bool = True
    users: list[OnlineUser] = Field(default_factory=list)


class HistoryMessage(BaseModel):
    username: str
    content: str
    timestamp: Optional[str] = None
    target_user: Optional[str] = None
    room_id: str = ""


class HistoryPage(BaseModel):
    """GET /messages response. ``next_since`` is the cursor for the following call."""
    success: bool = True
    messages: list[HistoryMessage] = Field(default_factory=list)
    next_since: int = 0


class HeartbeatResult(BaseModel):
    """POST /heartbeat response."""
    success: bool
    message: Optional[str] = None
    timestamp: Optional[str] = None
    connection_id: Optional[Union[int, str]] = None
    client_version: Optional[str] = None


class MetricSample(BaseModel):
    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    value: float


class ServerStats(BaseModel):
    """GET /metrics response, parsed from the Prometheus text format."""
    samples: list[MetricSample] = Field(default_factory=list)

    def value(self, name: str, **labels: str) -> Optional[float]:
        """First sample called ``name`` whose labels include ``labels``."""
        for sample in self.samples:
            if sample.name == name and all(sample.labels.get(k) == v for k, v in labels.items()):
                return sample.value
        return None
